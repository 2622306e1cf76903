"""Constants for multipart uploads, presigned URLs, progress bars and object keys."""

# Files at or above this size are uploaded in parts
MULTIPART_THRESHOLD = 50 * 1024 * 1024  # 50 MiB

# Size of a single part for multipart uploads
PART_SIZE = 10 * 1024 * 1024  # 10 MiB

# S3 hard limits
MULTIPART_MIN_PART_SIZE = 5 * 1024 * 1024  # 5 MiB
MULTIPART_MAX_PARTS = 10000

# Attempts per part, including the first one
MAX_RETRIES = 3

# Delay before the first retry, doubled for every further attempt
RETRY_BASE_DELAY = 1.0  # seconds

# Number of parts uploaded in parallel
DEFAULT_CONCURRENCY = 4

# Presigned URL lifetimes
PART_URL_EXPIRY = 60 * 60  # 1 hour per part
SINGLE_PUT_URL_EXPIRY = 15 * 60  # 15 minutes

# Timeout for a single part transfer
PART_UPLOAD_TIMEOUT = 300  # seconds

UPLOAD_KEY_PREFIX = "uploads"
DEFAULT_CONTENT_TYPE = "application/octet-stream"

TQDM_BAR_FORMAT = "{desc} ▕{bar:50}▏ {n_fmt:>10}/{total_fmt:<10} ({rate_fmt:>12}, ETA: {remaining:>6}) {postfix}"
TQDM_DEFAULTS = {
    "bar_format": TQDM_BAR_FORMAT,
    "unit": "iB",
    "unit_scale": True,
    "miniters": 1,
    "smoothing": 0.00001,
    "colour": "cyan",
    "ascii": "░▒█",
}
