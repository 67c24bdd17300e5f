import os
import shutil


def find_tesseract_cmd():
    """Attempt to find the Tesseract executable in common paths or PATH."""
    # 1. From environment variable
    if os.getenv("TESSERACT_CMD"):
        return os.getenv("TESSERACT_CMD")
    # 2. From shutil.which (checks PATH)
    if shutil.which("tesseract"):
        return "tesseract"
    # 3. Common Windows paths
    if os.name == "nt":
        for path in [
            r"C:\Program Files\Tesseract-OCR\tesseract.exe",
            r"C:\Program Files (x86)\Tesseract-OCR\tesseract.exe",
        ]:
            if os.path.exists(path):
                return path
    # 4. Common Linux paths
    for path in ["/usr/bin/tesseract", "/usr/local/bin/tesseract"]:
        if os.path.exists(path):
            return path
    return None


def _env_bool(name, default):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class BaseConfig:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///billtrack.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    REDIS_URL = os.environ.get("REDIS_URL", "redis://localhost:6379/0")

    # Uploads are stored relative to the instance folder unless absolute
    UPLOAD_FOLDER = os.environ.get("UPLOAD_FOLDER", "uploads")
    MAX_UPLOAD_SIZE = int(os.environ.get("MAX_UPLOAD_SIZE", 20 * 1024 * 1024))  # 20MB
    MAX_CONTENT_LENGTH = MAX_UPLOAD_SIZE + 1024 * 1024  # room for multipart overhead
    ALLOWED_EXTENSIONS = frozenset({"pdf", "jpg", "jpeg", "png", "gif", "bmp", "tiff"})

    # OCR
    OCR_ENABLED = _env_bool("OCR_ENABLED", True)
    TESSERACT_CMD = find_tesseract_cmd()
    TESS_LANG = os.environ.get("TESS_LANG", "eng")
    OCR_TIMEOUT = int(os.environ.get("OCR_TIMEOUT", 60))
    POPPLER_PATH = os.environ.get("POPPLER_PATH")

    DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 100

    WTF_CSRF_TIME_LIMIT = None
    SESSION_COOKIE_SAMESITE = "Lax"
    RATELIMIT_DEFAULT = os.environ.get("RATELIMIT_DEFAULT", "200/hour")
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    SESSION_COOKIE_SECURE = False


class TestingConfig(BaseConfig):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    OCR_ENABLED = False
    SERVER_NAME = "localhost"


class ProductionConfig(BaseConfig):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


def get_config(name=None):
    if name is None:
        name = os.environ.get("FLASK_ENV", "development").lower()
    if name.startswith("prod"):
        return ProductionConfig
    if name.startswith("test"):
        return TestingConfig
    return DevelopmentConfig
