# Overlay colors (RGB)
SIMILARITY_COLOR = (0, 255, 0)
DIFFERENCE_COLOR = (255, 0, 0)

# Overlay alpha: translucent when the base image is drawn underneath
OVERLAY_ALPHA_WITH_BASE = 128
OVERLAY_ALPHA_OPAQUE = 255

# Zoom
ZOOM_MIN = 0.1
WHEEL_ZOOM_FACTOR = 0.001

# Accepted input files
SUPPORTED_EXTENSIONS = {
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".webp": "image/webp",
    ".gif": "image/gif",
    ".bmp": "image/bmp",
}
MAX_FILE_SIZE_MB = 50

# Window defaults
DEFAULT_WINDOW_WIDTH = 1200
DEFAULT_WINDOW_HEIGHT = 800
PANEL_MIN_WIDTH = 300
PANEL_MIN_HEIGHT = 240
NOTIFICATION_TIMEOUT_MS = 5000

# Worker shutdown
WORKER_STOP_TIMEOUT_MS = 2000
