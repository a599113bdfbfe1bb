import os
from dotenv import load_dotenv

# Load .env from project root
load_dotenv()

DATABASE_URL = os.getenv("TOPOLOGY_DATABASE_URL", "sqlite:///./topology_builds.db")
LOG_LEVEL = os.getenv("TOPOLOGY_LOG_LEVEL", "INFO")
BOOTSTRAP_DIR = os.getenv("TOPOLOGY_BOOTSTRAP_DIR", ".")
CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("TOPOLOGY_CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
