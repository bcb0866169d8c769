import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./storefront.db")

# Sanity CMS Configuration
SANITY_PROJECT_ID = os.getenv("SANITY_PROJECT_ID")
SANITY_DATASET = os.getenv("SANITY_DATASET", "production")
SANITY_API_VERSION = os.getenv("SANITY_API_VERSION", "2024-01-01")
SANITY_API_TOKEN = os.getenv("SANITY_API_TOKEN")
# Shared secret sent by Sanity in the x-sanity-webhook-secret header
SANITY_WEBHOOK_SECRET = os.getenv("SANITY_WEBHOOK_SECRET")

# Stripe Configuration
STRIPE_SECRET_KEY = os.getenv("STRIPE_SECRET_KEY")
STRIPE_WEBHOOK_SECRET = os.getenv("STRIPE_WEBHOOK_SECRET")

# OpenAI Configuration (optional - explanations fall back to rule-based text)
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_BASE_URL = os.getenv("OPENAI_BASE_URL")
OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

# Qualiphy telehealth scheduling
QUALIPHY_API_KEY = os.getenv("QUALIPHY_API_KEY")
QUALIPHY_API_URL = os.getenv("QUALIPHY_API_URL", "https://api.qualiphy.me/api/exam_invite")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
CONTACT_EMAIL_TO = os.getenv("CONTACT_EMAIL_TO", "cole@lilyswomenshealth.com")
CONTACT_EMAIL_FROM = os.getenv("CONTACT_EMAIL_FROM", "noreply@lilyswomenshealth.com")

# Supabase Auth - access tokens are HS256 JWTs signed with the project JWT secret
SUPABASE_JWT_SECRET = os.getenv("SUPABASE_JWT_SECRET")
SUPABASE_JWT_AUDIENCE = os.getenv("SUPABASE_JWT_AUDIENCE", "authenticated")

# Comma separated list of admin emails
ADMIN_EMAILS = [
    email.strip().lower() for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()
]

# Frontend base URL for redirects
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

# Rate limiting is ENABLED by default
# Set RATE_LIMIT_ENABLED=false only for development/testing
RATE_LIMIT_ENABLED = os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true"

# CORS origins for the storefront frontend
ALLOWED_ORIGINS = os.getenv(
    "ALLOWED_ORIGINS",
    "https://lilyswomenshealth.com,https://www.lilyswomenshealth.com,http://localhost:3000",
).split(",")
