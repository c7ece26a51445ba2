import os

PURCHASE_API_URL = os.environ.get("PURCHASE_API_URL", "http://localhost:8080/api")
HTTP_TIMEOUT_SECONDS = float(os.environ.get("HTTP_TIMEOUT_SECONDS", "10"))

GATEWAY_KEY_ID = os.environ.get("GATEWAY_KEY_ID", "")
GATEWAY_SCRIPT_URL = os.environ.get("GATEWAY_SCRIPT_URL", "https://checkout.razorpay.com/v1/checkout.js")

APP_NAME = os.environ.get("APP_NAME", "WebApp")
PAYMENT_METHOD = os.environ.get("PAYMENT_METHOD", "RAZORPAY")
DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "INR")
MERCHANT_NAME = os.environ.get("MERCHANT_NAME", "Bitecodes Academy")
THEME_COLOR = os.environ.get("THEME_COLOR", "#3399cc")

TOKEN_STORAGE_KEY = os.environ.get("TOKEN_STORAGE_KEY", "token")
PROFILE_STORAGE_KEY = os.environ.get("PROFILE_STORAGE_KEY", "user")

SIMULATOR_KEY_SECRET = os.environ.get("SIMULATOR_KEY_SECRET", "sim_secret")
SIMULATOR_PRICE_MINOR = int(os.environ.get("SIMULATOR_PRICE_MINOR", "99900"))
