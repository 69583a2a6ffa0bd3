import os
from dotenv import load_dotenv

load_dotenv()

# =====================================================
# ENV
# =====================================================
ENV = os.getenv("ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# =====================================================
# DATABASE
# =====================================================
STORE_BACKEND = os.getenv("STORE_BACKEND", "mongo").strip().lower()
MONGO_URI = os.getenv("MONGO_URI") or os.getenv("MONGODB_URI")

# =====================================================
# JWT
# =====================================================
JWT_SECRET = os.getenv("JWT_SECRET")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_DAYS = int(os.getenv("ACCESS_TOKEN_DAYS", 30))

# =====================================================
# SETTLEMENT / MONEY
# =====================================================
DEFAULT_COMMISSION_RATE = os.getenv("DEFAULT_COMMISSION_RATE", "0.10")
CURRENCY_LABEL = os.getenv("CURRENCY_LABEL", "MT")
CURRENCY_MINOR_DIGITS = int(os.getenv("CURRENCY_MINOR_DIGITS", 2))
LOYALTY_UNIT_AMOUNT = int(os.getenv("LOYALTY_UNIT_AMOUNT", 100))

# =====================================================
# CORS
# =====================================================
CORS_ALLOWED_ORIGINS = os.getenv("CORS_ALLOWED_ORIGINS", "").split(",")


def validate_production_env() -> None:
    if (ENV or "").lower() != "production":
        return

    required = {
        "JWT_SECRET": JWT_SECRET,
    }
    if STORE_BACKEND == "mongo":
        required["MONGODB_URI"] = MONGO_URI

    invalid = []
    for key, value in required.items():
        val = (value or "").strip()
        if not val or val.startswith("CHANGE_THIS"):
            invalid.append(key)

    if STORE_BACKEND == "memory":
        invalid.append("STORE_BACKEND")

    if invalid:
        raise RuntimeError(f"Production env misconfigured. Invalid keys: {', '.join(sorted(invalid))}")
