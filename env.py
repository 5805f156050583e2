import os
from dotenv import load_dotenv

load_dotenv()

MONGO_DB_URL = os.getenv("MONGO_DB_URL")
db_name_news = os.getenv("MONGO_DB_NAME", "news_db")

SESSION_SECRET = os.getenv("SESSION_SECRET") or os.getenv("NEXTAUTH_SECRET") or "devsecret-change-me"
SESSION_ALGORITHM = "HS256"
SESSION_EXPIRE_DAYS = int(os.getenv("SESSION_EXPIRE_DAYS", 30))
SESSION_COOKIE_NAME = "session_token"

# Admin bypass credential, disabled unless both are set
ADMIN_EMAIL = os.getenv("ADMIN_EMAIL")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD")

CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME")
CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY")
CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET")
CLOUDINARY_FOLDER = os.getenv("CLOUDINARY_FOLDER", "news")

IMAGE_UPLOAD_REQUIRED = os.getenv("IMAGE_UPLOAD_REQUIRED", "true").lower() == "true"
DEVELOPMENT_MODE = os.getenv("DEVELOPMENT_MODE", "false").lower() == "true"

CATEGORIES = [
    "business", "tech", "weather", "automotive", "pakistan",
    "global", "health", "sports", "islam", "education", "entertainment",
]
