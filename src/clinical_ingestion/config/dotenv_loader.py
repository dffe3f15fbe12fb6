# ============================================================================
# src/clinical_ingestion/config/dotenv_loader.py
# ============================================================================
"""
.env discovery: project root first, then the current working directory.
"""

from pathlib import Path

from dotenv import load_dotenv


def load_env_file() -> bool:
    """Load .env file if it exists. Returns True when one was loaded."""
    env_path = Path(__file__).parent.parent.parent.parent / '.env'
    if env_path.exists():
        load_dotenv(env_path)
        return True

    cwd_env = Path.cwd() / '.env'
    if cwd_env.exists():
        load_dotenv(cwd_env)
        return True

    return False
