"""Test-specific configuration for Yurushiri tests"""

# Applied to os.environ by conftest before the app is imported
test_env = {
    "DATABASE_URL": "sqlite://",
    "SESSION_SECRET_KEY": "test-session-secret-key-with-at-least-32-chars",
    "SECURE_COOKIES": "false",
    "SUPABASE_URL": "https://supabase.test",
    "SUPABASE_ANON_KEY": "test-anon-key",
    "DIFY_API_KEY": "",
    "ENVIRONMENT": "test",
}

# Configuration dictionary handed to clients built with mock transports
test_config = {
    "supabase_url": "https://supabase.test",
    "supabase_anon_key": "test-anon-key",
    "dify_api_base_url": "https://dify.test",
    "dify_api_key": "test-dify-key",
}
