import os
from decimal import Decimal

# Database Configuration
# Uses default credentials for local Docker Compose setup
DB_URL = os.getenv("DATABASE_URL", "postgres://user:password@db:5432/pizzacraft_db")

# Application Metadata
PROJECT_NAME = "PizzaCraft Ordering API"
VERSION = "1.0.0"
ENVIRONMENT = os.getenv("ENVIRONMENT", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Auth
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-in-production")
TOKEN_MAX_AGE_SECONDS = int(os.getenv("TOKEN_MAX_AGE_SECONDS", 7 * 24 * 60 * 60))  # 7 days
PASSWORD_RESET_MINUTES = int(os.getenv("PASSWORD_RESET_MINUTES", 10))

# Calendar day boundaries (order numbers, stats, business hours)
STORE_TIMEZONE = os.getenv("STORE_TIMEZONE", "UTC")

# Pricing (minor currency unit is 0.01)
BASE_PIZZA_PRICE = Decimal(os.getenv("BASE_PIZZA_PRICE", "899"))
TAX_RATE = Decimal(os.getenv("TAX_RATE", "0.08"))
FREE_DELIVERY_THRESHOLD = Decimal(os.getenv("FREE_DELIVERY_THRESHOLD", "1999"))
DELIVERY_FEE = Decimal(os.getenv("DELIVERY_FEE", "199"))
ESTIMATED_DELIVERY_MINUTES = int(os.getenv("ESTIMATED_DELIVERY_MINUTES", 30))

# Payment gateway
CURRENCY = os.getenv("CURRENCY", "INR")
RAZORPAY_KEY_ID = os.getenv("RAZORPAY_KEY_ID", "rzp_test_xxxxxxxxxx")
RAZORPAY_KEY_SECRET = os.getenv("RAZORPAY_KEY_SECRET", "your_test_secret_key")
RAZORPAY_BASE_URL = os.getenv("RAZORPAY_BASE_URL", "https://api.razorpay.com/v1")
GATEWAY_TIMEOUT = float(os.getenv("GATEWAY_TIMEOUT", 30))

# Email relay (empty host disables sending)
SMTP_HOST = os.getenv("SMTP_HOST", "")
SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
SMTP_USER = os.getenv("SMTP_USER", "")
SMTP_PASSWORD = os.getenv("SMTP_PASSWORD", "")
SMTP_STARTTLS = os.getenv("SMTP_STARTTLS", "true").lower() == "true"
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL", "admin@pizzacraft.com")
FROM_EMAIL = os.getenv("FROM_EMAIL", "noreply@pizzacraft.com")
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:8080")
ADMIN_DASHBOARD_URL = os.getenv("ADMIN_DASHBOARD_URL", "http://localhost:8080/admin")

# Stock Monitor Configuration
STOCK_MONITOR_ENABLED = os.getenv("STOCK_MONITOR_ENABLED", "true").lower() == "true"
STOCK_ALERT_COOLDOWN_HOURS = int(os.getenv("STOCK_ALERT_COOLDOWN_HOURS", 6))
CRITICAL_STOCK_LEVEL = int(os.getenv("CRITICAL_STOCK_LEVEL", 5))
BUSINESS_HOURS_START = int(os.getenv("BUSINESS_HOURS_START", 11))
BUSINESS_HOURS_END = int(os.getenv("BUSINESS_HOURS_END", 23))
DAILY_REPORT_HOUR = int(os.getenv("DAILY_REPORT_HOUR", 9))
INITIAL_STOCK_CHECK_DELAY = int(os.getenv("INITIAL_STOCK_CHECK_DELAY", 5))  # seconds after startup

# Orders
RESTOCK_ON_CANCEL = os.getenv("RESTOCK_ON_CANCEL", "true").lower() == "true"
