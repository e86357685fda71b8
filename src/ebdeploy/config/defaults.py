"""Default values and polling constants for ebdeploy."""

# Retry and timeout defaults
DEFAULT_DEPLOYMENT_TIMEOUT = 900  # seconds
DEFAULT_MAX_RETRIES = 3
DEFAULT_RETRY_DELAY = 5  # seconds

# Poll intervals used by the watchers
CREATE_POLL_INTERVAL = 20  # seconds, environment creation
UPDATE_POLL_INTERVAL = 10  # seconds, environment update
HEALTH_POLL_INTERVAL = 15  # seconds

# Number of events fetched per event-log query (newest first)
EVENT_PAGE_SIZE = 10

# Region whose buckets are created without a LocationConstraint
DEFAULT_S3_REGION = "us-east-1"

# Archive written by the packager when no package path is given
PACKAGE_NAME_TEMPLATE = "deploy-{version_label}.zip"

# Environment variables consulted for defaults
GITHUB_SHA_ENV = "GITHUB_SHA"
GITHUB_OUTPUT_ENV = "GITHUB_OUTPUT"

# Thresholds for configuration warnings
LOW_TIMEOUT_WARNING_THRESHOLD = 120  # seconds
