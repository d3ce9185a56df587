"""Configuration loader for Yurushiri"""

import os
from pathlib import Path

from dotenv import load_dotenv

project_dir = Path(__file__).parent.parent.parent
env_path = project_dir / ".env"

# Load .env file if it exists. For local development only.
if env_path.exists():
    load_dotenv(env_path)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Configuration dictionary - set once at initialization
config = {
    "database_url": os.getenv("DATABASE_URL"),
    "supabase_url": os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL"),
    "supabase_anon_key": os.getenv("SUPABASE_ANON_KEY")
    or os.getenv("NEXT_PUBLIC_SUPABASE_ANON_KEY"),
    # Overrides the e-mail confirmation redirect used on sign up
    "redirect_url": os.getenv("NEXT_PUBLIC_DEV_SUPABASE_REDIRECT_URL"),
    "dify_api_base_url": os.getenv("DIFY_API_BASE_URL", "https://api.dify.ai"),
    "dify_api_key": os.getenv("DIFY_API_KEY"),
    "session_secret_key": os.getenv("SESSION_SECRET_KEY"),
    # Local HTTP development can turn this off; every deployed env runs HTTPS
    "secure_cookies": _env_flag("SECURE_COOKIES", "true"),
    "enable_ai_image_tools": _env_flag("ENABLE_AI_IMAGE_TOOLS"),
    "port": int(os.getenv("PORT", "8080")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "app_base_url": os.getenv("APP_BASE_URL"),
    "environment": os.getenv("ENVIRONMENT", "development"),
}
