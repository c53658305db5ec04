"""
The failure channel. Holds the process-wide failure mode and turns a failed
check into either a raised violation ("throw") or an ERROR log line ("log").

The mode is a single shared cell with no locking. setFailureMode returns the
previous value so a caller can restore it; usingFailureMode does exactly that
around a block.
"""

import contextlib
import enum
import logging

from always import config
from always import trace

logger = logging.getLogger(__name__)

class FailureMode(str, enum.Enum):
  LOG = "log"
  THROW = "throw"

  def __str__(self):
    return self.value

class Error(Exception):
  """Base error for the always package."""

class ConfigurationError(Error):
  """A contract was declared or applied incorrectly. Raised regardless of the
     failure mode."""

class ContractViolation(Error, AssertionError):
  """A check failed. Carries the message and the trace event of the check."""

  def __init__(self, message, event=None):
    super().__init__(message)
    self.message = message
    self.event = {} if event is None else event

  @property
  def kind(self):
    return self.event.get("kind")

class PreconditionViolation(ContractViolation):
  """The arguments (or the value being set) were rejected before the call."""

class PostconditionViolation(ContractViolation):
  """The result was rejected after the call. The call has already happened."""

class InvariantViolationBefore(ContractViolation):
  """The receiver was already inconsistent when the call was made."""

class InvariantViolationAfter(ContractViolation):
  """The call left the receiver inconsistent."""

class InvariantViolationAtConstruction(ContractViolation):
  """The constructor produced an inconsistent instance."""

VIOLATIONS = {
  trace.CONSTANT_BEFORE: InvariantViolationBefore,
  trace.BEFORE: PreconditionViolation,
  trace.SETTER_BEFORE: PreconditionViolation,
  trace.AFTER: PostconditionViolation,
  trace.SETTER_AFTER: PostconditionViolation,
  trace.CONSTANT_AFTER: InvariantViolationAfter,
  trace.CONSTANT_CONSTRUCTOR: InvariantViolationAtConstruction,
}

def toFailureMode(mode):
  """Coerces "log"/"throw" (or a FailureMode) to a FailureMode. Raises
     ConfigurationError for anything else."""
  try:
    return FailureMode(mode)
  except ValueError:
    raise ConfigurationError("Unknown failure mode %r; expected one of %s."
                             % (mode, ", ".join(m.value for m in FailureMode)))

def _initialMode():
  requested = config.initialFailureMode()
  try:
    return FailureMode(requested)
  except ValueError:
    logger.warning("Ignoring %s=%r; using %s.", config.FAILURE_MODE_VARIABLE,
                   requested, config.DEFAULT_FAILURE_MODE)
    return FailureMode(config.DEFAULT_FAILURE_MODE)

_mode = _initialMode()

def getFailureMode():
  return _mode

def setFailureMode(mode):
  """Replaces the process-wide failure mode and returns the previous one."""
  global _mode
  previous, _mode = _mode, toFailureMode(mode)
  return previous

@contextlib.contextmanager
def usingFailureMode(mode):
  """Runs the block under mode, restoring the previous mode afterwards."""
  previous = setFailureMode(mode)
  try:
    yield previous
  finally:
    setFailureMode(previous)

def effectiveMode(override):
  """A contract's own mode wins over the process-wide one."""
  return getFailureMode() if override is None else override

def violation(message, info):
  """Builds the violation matching the kind of the trace event info."""
  return VIOLATIONS.get(info["kind"], ContractViolation)(message, info)

def handleFailure(mode, error):
  """Raises error in throw mode; logs its message otherwise."""
  if mode == FailureMode.THROW:
    raise error
  logger.error("%s", error.message)
