import os

from dotenv import load_dotenv

load_dotenv()

# Database config
BASE_DIR = os.path.abspath(os.path.dirname(__file__))
DEFAULT_SQLITE = "sqlite:///" + os.path.join(BASE_DIR, "setlists.db")
SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", DEFAULT_SQLITE)

FLASK_SECRET_KEY = os.environ.get("FLASK_SECRET_KEY", "dev-secret")

# --- Field limits ---
NAME_MAX_LENGTH = 200
TITLE_MAX_LENGTH = 200

# --- Setlist listing ---
DEFAULT_PAGE_LIMIT = int(os.environ.get("DEFAULT_PAGE_LIMIT", "50"))
MAX_PAGE_LIMIT = int(os.environ.get("MAX_PAGE_LIMIT", "200"))

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

# Client settings
API_BASE_URL = os.environ.get("API_BASE_URL", "http://localhost:5055")
API_TIMEOUT = float(os.environ.get("API_TIMEOUT", "10"))


def normalize_database_url(db_url: str) -> str:
    """Point postgres URLs at the psycopg 3 driver; leave everything else alone."""
    # Render/Railway sometimes prefix with postgres:// – SQLAlchemy accepts postgresql://
    if db_url.startswith("postgres://"):
        return db_url.replace("postgres://", "postgresql+psycopg://", 1)
    if db_url.startswith("postgresql://") and "+psycopg" not in db_url:
        return db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    return db_url
