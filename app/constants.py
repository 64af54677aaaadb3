import os

APP_DIR = os.path.dirname(os.path.abspath(__file__))
DATA_DIR = os.path.join(APP_DIR, 'data')
CONFIG_DIR = os.path.join(APP_DIR, 'config')
DB_FILE = os.path.join(CONFIG_DIR, 'tagsync.db')
CONFIG_FILE = os.path.join(CONFIG_DIR, 'settings.yaml')

TAGSYNC_DB = 'sqlite:///' + DB_FILE

BUILD_VERSION = '20261017_0900'

# Hashtag grammar
TAG_MARKER = '#'
MAX_TAG_LENGTH = 30
MAX_MANUAL_TAGS = 10

# Retry policy for transient storage errors during tag writes
TAG_RETRY_ATTEMPTS = 3
TAG_RETRY_DELAY = 0.05

DEFAULT_SETTINGS = {
    "database": {
        "url": TAGSYNC_DB,
    },
    "tags": {
        "marker": TAG_MARKER,
        "max_length": MAX_TAG_LENGTH,
        "max_manual_tags": MAX_MANUAL_TAGS,
        "retry_attempts": TAG_RETRY_ATTEMPTS,
        "retry_delay": TAG_RETRY_DELAY,
    },
}

DEFAULT_TAGS_LIMIT = 50
POPULAR_TAGS_LIMIT = 10
SEARCH_TAGS_LIMIT = 10
