"""
Constants and default values for the event sync service.

This module centralizes the magic numbers used across the handler, the
simulated remote store and the occurrence generator so there is a single
source of truth for them.

Constants are organized by category:
- Event categories
- Sync timing
- Simulation (occurrence generator and delayed store)
- Observation
"""

# Event categories
DEFAULT_CATEGORIES = ("A", "B")

# Sync timing (milliseconds)
SYNC_INTERVAL_MS_DEFAULT = 300

# Occurrence generator
MAX_EVENTS_DEFAULT = 1000
MAX_DELAY_MS_DEFAULT = 10

# Delayed store latency (milliseconds)
STORE_MIN_LATENCY_MS_DEFAULT = 5
STORE_MAX_LATENCY_MS_DEFAULT = 200

# Delayed store failure probabilities (per request, 0.0 - 1.0)
RATE_LIMITED_RATE_DEFAULT = 0.2
REQUEST_FAILED_RATE_DEFAULT = 0.1
AMBIGUOUS_WRITE_RATE_DEFAULT = 0.05

# Observation
STATS_SAMPLES_DEFAULT = 20
STATS_INTERVAL_MS_DEFAULT = 1000

# Logging format shared by the service and scripts
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
