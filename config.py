from pathlib import Path
from dotenv import load_dotenv
import os

load_dotenv()

BASE_DIR = Path(__file__).parent

# Data directory (gitignored) — holds the cached GTFS zip and its extraction
DATA_DIR = Path(os.getenv("DATA_DIR", str(BASE_DIR / "data")))
DATA_DIR.mkdir(parents=True, exist_ok=True)

# GTFS Static
# LIRR feed: https://rrgtfsfeeds.s3.amazonaws.com/gtfslirr.zip
GTFS_STATIC_URL: str = os.getenv("GTFS_STATIC_URL", "https://rrgtfsfeeds.s3.amazonaws.com/gtfslirr.zip")
GTFS_REFRESH_HOURS: int = int(os.getenv("GTFS_REFRESH_HOURS", "24"))

# GTFS-Realtime trip updates
GTFS_RT_URL: str = os.getenv(
    "GTFS_RT_URL",
    "https://api-endpoint.mta.info/Dataservice/mtagtfsfeeds/lirr%2Fgtfs-lirr",
)
GTFS_RT_API_KEY: str = os.getenv("GTFS_RT_API_KEY", "")  # sent as x-api-key when set

# Watch list (JSON array of departures), re-read every cycle
WATCHLIST_PATH = Path(os.getenv("WATCHLIST_PATH", str(BASE_DIR / "config.json")))

# Monitor timing
POLL_INTERVAL_SECONDS: int = int(os.getenv("POLL_INTERVAL_SECONDS", "60"))
NOTIFY_WINDOW_SECONDS: int = int(os.getenv("NOTIFY_WINDOW_SECONDS", str(30 * 60)))
CHECK_THROTTLE_SECONDS: int = int(os.getenv("CHECK_THROTTLE_SECONDS", str(5 * 60)))
DEPARTURE_TOLERANCE_SECONDS: int = int(os.getenv("DEPARTURE_TOLERANCE_SECONDS", str(5 * 60)))
SNOOZE_HOURS: int = int(os.getenv("SNOOZE_HOURS", "24"))

# Notifications / audio
NOTIFY_URL: str = os.getenv("NOTIFY_URL", "")
DING_WAV_PATH = Path(os.getenv("DING_WAV_PATH", str(BASE_DIR / "ding.wav")))

# API (control surface)
API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", "3000"))
CONTROL_API_KEY: str = os.getenv("CONTROL_API_KEY", "")
CORS_ORIGINS: list[str] = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
