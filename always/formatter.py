"""
Renders arbitrary values for violation messages and trace output. Rendering
must never raise: a value that cannot be rendered structurally falls back to
str(), and failing that to a fixed placeholder.
"""

import enum
import inspect
import json

UNPRINTABLE = "<unprintable>"
CIRCULAR = "[Circular]"

def formatValue(value):
  """Returns a stable, single-line rendering of value."""
  try:
    return _render(value, set())
  except Exception:
    try:
      return str(value)
    except Exception:
      return UNPRINTABLE

def formatArgs(args, kwargs=None):
  """Comma-joins the rendered positional arguments followed by any keyword
     arguments as name=value."""
  parts = [formatValue(arg) for arg in args]
  if kwargs:
    parts.extend("%s=%s" % (name, formatValue(value))
                 for (name, value) in kwargs.items())
  return ", ".join(parts)

def _functionName(value):
  name = getattr(value, "__name__", None)
  if not name or name == "<lambda>":
    return "anonymous"
  return name

def _isFunction(value):
  if inspect.isroutine(value) or inspect.isclass(value):
    return True
  return inspect.isroutine(getattr(value, "__wrapped__", None))

def _render(value, ancestors):
  if isinstance(value, str):
    return json.dumps(value, ensure_ascii=False)
  if value is None or isinstance(value, (bool, int, float, complex, bytes)):
    return repr(value)
  if isinstance(value, enum.Enum):
    return str(value)
  if _isFunction(value):
    return "[Function %s]" % _functionName(value)

  # Everything past here may contain itself.
  if id(value) in ancestors:
    return CIRCULAR
  ancestors.add(id(value))
  try:
    return _renderStructure(value, ancestors)
  finally:
    ancestors.discard(id(value))

def _renderStructure(value, ancestors):
  if isinstance(value, list):
    return "[%s]" % ", ".join(_render(item, ancestors) for item in value)
  if isinstance(value, tuple):
    items = [_render(item, ancestors) for item in value]
    if len(items) == 1:
      return "(%s,)" % items[0]
    return "(%s)" % ", ".join(items)
  if isinstance(value, (set, frozenset)):
    # Iteration order of a set varies between runs.
    return "{%s}" % ", ".join(sorted(_render(item, ancestors)
                                     for item in value))
  if isinstance(value, dict):
    return _renderMapping(value, ancestors)

  # Plain objects render as their fields unless their class knows better.
  if type(value).__repr__ is object.__repr__ and hasattr(value, "__dict__"):
    return _renderMapping(vars(value), ancestors)
  return repr(value)

def _renderMapping(mapping, ancestors):
  return "{%s}" % ", ".join("%s: %s" % (_render(key, ancestors),
                                        _render(item, ancestors))
                            for (key, item) in mapping.items())
