"""Toosla Storage constants."""

# local medium partitions
TOOSLA_KEY_PREFIX = "toosla."
SECRET_KEY_PREFIX = "secret."
PIN_KEY = "passwd.pin"

# well-known secret labels
PIN_LABEL = "pin"
CREDENTIALS_LABEL = "storage.credentials"

# link status
LINK_STATUS_UNLINKED = "unlinked"  # before login, invalid tokens
LINK_STATUS_LINKED = "linked"  # after login, valid tokens

# change status
CHANGE_STATUS_CLEAN = "clean"  # no unsaved changes, in sync
CHANGE_STATUS_DIRTY = "dirty"  # unsaved changes, not in sync

# remote API
DEFAULT_URL = "http://localhost:9090"
DEFAULT_REMOTE_PATH = "/Toosla/data.json"
DEFAULT_TIMEOUT = 30.0
DEFAULT_SYNC_INTERVAL = 300.0

API_STORAGE = "/api/storage"
API_STORAGE_LOGIN = API_STORAGE + "/login"
API_STORAGE_READ = API_STORAGE + "/read"
API_STORAGE_WRITE = API_STORAGE + "/write"
