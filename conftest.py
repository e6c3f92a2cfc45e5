import os

from dotenv import load_dotenv

# Optional overrides for local test runs; fixtures pass explicit settings anyway
env_test_path = os.path.join(os.path.dirname(__file__), ".env.test")
if os.path.exists(env_test_path):
    load_dotenv(env_test_path, override=True)

from libs.common.config import get_settings  # noqa: E402

get_settings.cache_clear()
