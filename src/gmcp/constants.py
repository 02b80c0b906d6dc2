"""Application-wide constants for gmcp-server."""

# Google API base URLs
GMAIL_API_BASE = "https://gmail.googleapis.com/gmail/v1"
CALENDAR_API_BASE = "https://www.googleapis.com/calendar/v3"
GOOGLE_TOKEN_URI = "https://oauth2.googleapis.com/token"
GOOGLE_AUTH_URI = "https://accounts.google.com/o/oauth2/auth"

# Search
DEFAULT_MAX_RESULTS = 10
MAX_RESULTS_LIMIT = 100

# Detail fetches in flight at once while expanding a search page
EMAIL_FETCH_BATCH_SIZE = 10

# Upper bound on ids accepted by batch label modification
MAX_BATCH_SIZE = 1000

# Nesting limit when walking MIME part trees
MAX_MIME_DEPTH = 50

# Headers requested when message bodies are not needed
METADATA_HEADERS = ["From", "To", "Subject", "Date"]

# Characters of a body kept per message in search results
BODY_PREVIEW_LENGTH = 500
