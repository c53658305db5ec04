"""
Normalizes contract declarations into a ContractSpec.

A declaration is either a bare invariant (any callable) or a record of fields,
given as a mapping, as keyword arguments, or both:

  before / requires     precondition, called with the call's arguments
  after / ensures       postcondition, called with (result, *args, **kwargs)
  constant / invariant  invariant, called with the receiver
  trace                 True, False or a sink callable
  failureMode           "log" or "throw"

A field is present only when it has the expected shape (a callable for the
three predicates). The alias is consulted when the primary name is absent.
Malformed fields are dropped rather than rejected.
"""

import collections
import collections.abc
import logging

from always.failure import FailureMode

logger = logging.getLogger(__name__)

ContractSpec = collections.namedtuple(
    "ContractSpec", ("before", "after", "constant", "trace", "failureMode"),
    defaults=(None,) * 5)

_PREDICATES = (("before", "requires"), ("after", "ensures"),
               ("constant", "invariant"))
_KNOWN = frozenset(name for pair in _PREDICATES for name in pair) | \
         frozenset(("trace", "failureMode"))

def _predicate(record, primary, alias):
  for key in (primary, alias):
    candidate = record.get(key)
    if callable(candidate):
      return candidate
  return None

def _trace(record):
  setting = record.get("trace")
  if isinstance(setting, bool) or callable(setting):
    return setting
  return None

def _failureMode(record):
  mode = record.get("failureMode")
  if isinstance(mode, str):
    try:
      return FailureMode(mode)
    except ValueError:
      pass
  return None

def _dropped(record, spec):
  """Names of fields given but not kept, for the debug log."""
  kept = set()
  for (primary, alias) in _PREDICATES:
    value = getattr(spec, primary)
    kept.update(key for key in (primary, alias) if record.get(key) is value)
  if spec.trace is not None:
    kept.add("trace")
  if spec.failureMode is not None:
    kept.add("failureMode")
  return sorted(key for key in record if key not in kept and
                (key not in _KNOWN or record[key] is not None))

def resolveSpec(raw=None, **fields):
  """Returns the ContractSpec for a declaration. Never raises."""
  if isinstance(raw, ContractSpec) and not fields:
    return raw

  record = {}
  if isinstance(raw, ContractSpec):
    record.update(raw._asdict())
  elif isinstance(raw, collections.abc.Mapping):
    record.update(raw)
  record.update(fields)

  spec = ContractSpec(
    before=_predicate(record, "before", "requires"),
    after=_predicate(record, "after", "ensures"),
    constant=raw if callable(raw) else _predicate(record, "constant",
                                                  "invariant"),
    trace=_trace(record),
    failureMode=_failureMode(record))

  dropped = _dropped(record, spec)
  if dropped:
    logger.debug("Ignoring contract fields: %s", ", ".join(dropped))
  return spec

def isEmpty(spec):
  """True when the spec has nothing to check."""
  return spec.before is None and spec.after is None and spec.constant is None
