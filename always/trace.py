"""
Trace events describe a single failed check. They are handed to the sink named
by a contract's trace setting: a callable, True (the default logging sink) or
False (tracing off). A sink that raises is ignored; tracing must never change
what the checked program does.
"""

import logging

from always.formatter import formatValue

logger = logging.getLogger(__name__)

CONSTANT_BEFORE = "constant-before"
BEFORE = "before"
AFTER = "after"
CONSTANT_AFTER = "constant-after"
SETTER_BEFORE = "setter-before"
SETTER_AFTER = "setter-after"
CONSTANT_CONSTRUCTOR = "constant-constructor"

KINDS = (CONSTANT_BEFORE, BEFORE, AFTER, CONSTANT_AFTER, SETTER_BEFORE,
         SETTER_AFTER, CONSTANT_CONSTRUCTOR)

_MISSING = object()

def event(kind, className, name=None, args=_MISSING, kwargs=None,
          value=_MISSING, result=_MISSING):
  """Builds the event mapping. Only the keys that apply to the check are
     present: args for methods, value for setters, result once the operation
     has run."""
  info = {"kind": kind, "class": className}
  if name is not None:
    info["name"] = name
  if args is not _MISSING:
    info["args"] = list(args)
    if kwargs:
      info["kwargs"] = dict(kwargs)
  if value is not _MISSING:
    info["value"] = value
  if result is not _MISSING:
    info["result"] = result
  return info

def logSink(info):
  """The default sink. Logs at DEBUG along with the stack of the check."""
  logger.debug("%s %s", info.get("kind"), formatValue(info), stack_info=True)

def emit(setting, info):
  """Delivers info according to setting. None means the default."""
  if setting is False:
    return
  sink = logSink if setting is None or setting is True else setting
  try:
    sink(info)
  except Exception:
    logger.debug("Trace sink %r raised; ignoring.", sink, exc_info=True)
