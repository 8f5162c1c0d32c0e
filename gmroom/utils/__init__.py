# Shared utilities
from .logging import (log, logWarning, logError, logDebug, init_logging, close_logging,
                      print_summary, get_counts, get_warnings, reset_counts)
from .binary import BinaryCursor, BinaryWriter, read_chunk_header
