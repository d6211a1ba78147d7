# config.py
import os
from pathlib import Path

DB_PATH = Path(os.environ.get("PULSE_DB_PATH", Path(__file__).resolve().parent / "activity.duckdb"))

# Keywords that make an item eligible for a cascade badge
SIGNIFICANT_KEYWORDS = [
    # breaking / urgent
    "breaking", "urgent", "alert", "just in", "developing",
    # military / conflict
    "strike", "attack", "explosion", "missile", "drone", "airstrike",
    "troops", "military", "invasion", "offensive", "frontline",
    # diplomatic / political crisis
    "ceasefire", "peace", "hostage", "assassination", "coup",
    "martial law", "emergency", "sanctions", "expelled",
    # critical infrastructure
    "nuclear", "chemical", "biological", "embassy", "evacuate",
    # civil unrest
    "protests", "riot", "crackdown", "killed", "casualties",
]

STOP_WORDS = {
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "of", "with", "by", "from", "as", "is", "was", "are", "were", "been",
    "be", "have", "has", "had", "do", "does", "did", "will", "would",
    "could", "should", "may", "might", "must", "shall", "can", "need",
    "that", "this", "these", "those", "it", "its", "he", "she", "they",
    "we", "you", "i", "me", "my", "your", "his", "her", "their", "our",
    "what", "which", "who", "whom", "whose", "where", "when", "why", "how",
    "says", "said", "after", "about", "over", "into", "during", "before",
}

SIMILARITY_THRESHOLD = 0.3
FIRST_WINDOW_MINUTES = 30
DEVELOPING_MIN_CORROBORATIONS = 2

# Source activity
WINDOW_HOURS = 6
ANOMALY_THRESHOLD = 2.5
MIN_ANOMALOUS_COUNT = 3
CONSERVATIVE_DEFAULT_PPD = 3

# Activity log
ROLLING_WINDOW_DAYS = 14
RETENTION_DAYS = 90
MAX_TREND_DAYS = 90

# Region activity: UTC 6h slots, must sum to 4.0
TIME_OF_DAY_MULTIPLIERS = (0.4, 0.8, 1.5, 1.3)
SCORING_EXCLUDED_REGIONS = ["latam", "asia", "africa"]
DEFAULT_REGION_BASELINE_6H = 30
