import os

from dotenv import load_dotenv, find_dotenv

# load .env
load_dotenv(find_dotenv(usecwd=True), override=False)


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "y")


# overridable via env vars if you like
HEADLESS = _env_bool("GRANTFILL_HEADLESS", "true")
HIGHLIGHT = _env_bool("GRANTFILL_HIGHLIGHT", "true")

# safety valve for multi-page forms
MAX_PAGES = int(os.getenv("GRANTFILL_MAX_PAGES", "20"))

# confidence thresholds
MATCH_THRESHOLD = float(os.getenv("GRANTFILL_MATCH_THRESHOLD", "0.5"))
OPTION_THRESHOLD = float(os.getenv("GRANTFILL_OPTION_THRESHOLD", "0.6"))
PDF_THRESHOLD = float(os.getenv("GRANTFILL_PDF_THRESHOLD", "0.4"))

# timing (ms)
PAGE_LOAD_TIMEOUT_MS = int(os.getenv("GRANTFILL_PAGE_LOAD_TIMEOUT_MS", "60000"))
SETTLE_MS = int(os.getenv("GRANTFILL_SETTLE_MS", "2000"))
FIELD_TIMEOUT_MS = int(os.getenv("GRANTFILL_FIELD_TIMEOUT_MS", "5000"))
WRITE_PAUSE_MS = int(os.getenv("GRANTFILL_WRITE_PAUSE_MS", "200"))
QUESTION_PAUSE_MS = 100
NETWORK_IDLE_TIMEOUT_MS = 10000

# language model
MODEL_NAME = os.getenv("GRANTFILL_MODEL", "gemini-2.5-flash-lite")
DRAFT_BATCH = int(os.getenv("GRANTFILL_DRAFT_BATCH", "5"))
DRAFT_DELAY_S = float(os.getenv("GRANTFILL_DRAFT_DELAY_S", "0.2"))
HTML_CHAR_LIMIT = 100_000
PROFILE_SECTION_LIMIT = 800


def gemini_api_key():
    return os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")


# topic categories for semantic scoring
SEMANTIC_KEYWORDS = {
    "organization":   ["org", "company", "nonprofit", "entity", "legal", "name"],
    "mission":        ["purpose", "goal", "objective", "vision", "statement"],
    "contact":        ["email", "phone", "address", "representative", "person"],
    "funding":        ["amount", "budget", "grant", "request", "money", "funds"],
    "ein":            ["tax", "id", "taxpayer", "federal", "employer", "identification"],
    "timeline":       ["schedule", "date", "duration", "period", "start", "end"],
    "beneficiaries":  ["served", "participants", "recipients", "population", "target", "number"],
    "outcomes":       ["results", "impact", "metrics", "success", "goals", "achievements", "measurable"],
    "program":        ["project", "initiative", "activity", "service"],
    "description":    ["describe", "explain", "detail", "summary"],
    "sustainability": ["sustain", "continue", "maintain", "future", "ongoing"],
    "budget":         ["breakdown", "expenses", "costs", "spending"],
    "technology":     ["tech", "digital", "computer", "software", "hardware"],
}

# navigation keywords (multilingual)
NEXT_KEYWORDS = [
    "next", "continue", "proceed", "forward", "siguiente", "suivant",
    "weiter", "avanti", "próximo", "continuar", "continuer",
]
SUBMIT_KEYWORDS = ["submit", "send", "enviar", "soumettre"]
