"""
Jewelcraft - Centralized Configuration
=======================================
All environment variables and constants are loaded here.
No other module should call os.getenv() directly.
"""

import os
from decimal import Decimal
from dotenv import load_dotenv

load_dotenv()


# ==========================================
# 🗄️ Database
# ==========================================
DB_USER = os.getenv("DB_USER")
DB_PASSWORD = os.getenv("DB_PASSWORD")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME")

if os.getenv("DATABASE_URL"):
    DATABASE_URL = os.getenv("DATABASE_URL")
elif all([DB_USER, DB_PASSWORD, DB_HOST, DB_NAME]):
    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
else:
    # Local development fallback
    DATABASE_URL = "sqlite:///./jewelcraft.db"


# ==========================================
# 💰 Pricing Policy
# ==========================================
CURRENCY = os.getenv("CURRENCY", "INR")

# Flat tax (GST) applied on metal value + making charge
DEFAULT_TAX_PERCENT = Decimal(os.getenv("DEFAULT_TAX_PERCENT", "3"))

# Derived commercial fields: mrp = final * MRP_MARGIN, cost = final * ASSUMED_COST_MARGIN
MRP_MARGIN = Decimal(os.getenv("MRP_MARGIN", "1.10"))
ASSUMED_COST_MARGIN = Decimal(os.getenv("ASSUMED_COST_MARGIN", "0.70"))

DEFAULT_MAKING_CHARGE_PERCENT = {
    "gold": Decimal("15"),
    "silver": Decimal("20"),      # silver work carries higher labour share
    "platinum": Decimal("10"),
}


# ==========================================
# 📈 Market Rate Feed
# ==========================================
METALS_API_KEY = os.getenv("METALS_API_KEY", "")
METALS_API_URL = os.getenv("METALS_API_URL", "https://api.metals-api.com/v1/latest")
RATE_FEED_TIMEOUT = int(os.getenv("RATE_FEED_TIMEOUT") or "10")  # seconds

RATE_AUTO_UPDATE = os.getenv("RATE_AUTO_UPDATE", "true").lower() == "true"
RATE_STALE_AFTER_MINUTES = int(os.getenv("RATE_STALE_AFTER_MINUTES") or "15")
RATE_UPDATE_INTERVAL_MINUTES = int(os.getenv("RATE_UPDATE_INTERVAL_MINUTES") or "5")


# ==========================================
# 🔧 App
# ==========================================
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
