"""
Run Comparison Rules - Constants Configuration

This module centralizes all configuration constants used by the rule engine,
the bundled rule sets, the CLI and the dashboard API.
Each constant is documented with its purpose and acceptable value ranges.
"""

# ==============================================================================
# DATA TYPES
# ==============================================================================

# Data type name for aperf's own collection statistics
# Each run records how long every collector took to collect and print its data
APERF_RUN_STATS = "aperf_run_stats"

# Display label used when reporting the aperf_run_stats rule set
APERF_RUN_STATS_PRETTY_NAME = "Aperf Stats"

# Series names inside an aperf_run_stats payload
SERIES_COLLECT = "collect"
SERIES_PRINT = "print"


# ==============================================================================
# RUN METADATA
# ==============================================================================

# File written next to the collected data holding the recorder's parameters
META_DATA_FILE = "meta_data.yaml"

# Extension of raw payload files inside a run directory
PAYLOAD_FILE_SUFFIX = ".json"

# Metadata field holding the collection interval (always stored in ms)
INTERVAL_FIELD = "interval_in_ms"

# Metadata field holding the unit the user asked for ("SECONDS" | "MILLISECONDS")
INTERVAL_TYPE_FIELD = "interval_type"

# interval_type value meaning the interval was given in seconds
INTERVAL_TYPE_SECONDS = "SECONDS"

# Unit labels used in finding messages
UNIT_MS = "ms"
UNIT_SECONDS = "s"

# Milliseconds per second, used to express SECONDS intervals in their own unit
MS_PER_SECOND = 1000

# Microseconds per millisecond (time_taken is recorded in us)
US_PER_MS = 1000


# ==============================================================================
# COLLECT / PRINT TIME COMPARISON THRESHOLDS
# ==============================================================================

# Absolute median threshold in microseconds
# A comparison run is flagged only if its median time_taken grew by more than this
US_FLOOR = 100.0

# Relative median threshold as a fraction (0.0 - 1.0)
# 0.10 = 10% increase over the base run's median time_taken
PCT_FLOOR = 0.10

# Significance level (alpha) for the one-sided Mann-Whitney U test (0.0 - 1.0)
MANN_WHITNEY_ALPHA = 0.05

# Minimum samples per run before a time comparison is attempted
# Fewer samples produce a Neutral (inconclusive) finding instead
MIN_SAMPLES_FOR_COMPARISON = 5


# ==============================================================================
# EXIT CODES
# ==============================================================================

# Exit code when every finding is Good or Neutral
EXIT_SUCCESS = 0

# Exit code when at least one NotGood finding was produced
EXIT_FAILURE = 1

# Exit code for parsing/input errors
EXIT_PARSE_ERROR = 2


# ==============================================================================
# DASHBOARD API
# ==============================================================================

# Default bind address and port for the JSON API
# Overridden by PERFRULES_HOST / PERFRULES_PORT
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 5000
