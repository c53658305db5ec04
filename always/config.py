"""
Process-wide switches, seeded from the environment at import time.
"""

import os

# Consulted when a decorator is applied. This will have weird behavior if you
# change it while classes are still being defined.
CHECK_CONTRACTS = os.environ.get("ALWAYS_CHECK_CONTRACTS", "1") != "0"

# Names the initial process-wide failure mode ("log" or "throw").
FAILURE_MODE_VARIABLE = "ALWAYS_FAILURE_MODE"

DEFAULT_FAILURE_MODE = "log"

def initialFailureMode():
  """Returns the raw failure mode requested by the environment."""
  return os.environ.get(FAILURE_MODE_VARIABLE, DEFAULT_FAILURE_MODE)
