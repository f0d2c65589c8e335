"""
Unified test infrastructure for pcache.

Modules:
- file_utils: Utilities for creating files and directories
- store_doubles: Cache store test doubles (counters, failures, fake clock)
- data_utils: Data contexts that count field reads
- cli_utils: Running the CLI in a subprocess
"""

from .file_utils import write, write_template, write_config
from .store_doubles import CountingStore, FailingStore, FakeClock
from .data_utils import CountingData, CallCounter
from .cli_utils import run_cli, jload

__all__ = [
    # File utilities
    "write", "write_template", "write_config",

    # Store doubles
    "CountingStore", "FailingStore", "FakeClock",

    # Data contexts
    "CountingData", "CallCounter",

    # CLI utilities
    "run_cli", "jload",
]
