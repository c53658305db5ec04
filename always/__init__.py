"""
Design-by-contract checks for functions, methods, property setters and
classes.

  from always import always

  @always(lambda self: self.balance >= 0)
  class Account(object):
    def __init__(self):
      self.balance = 0

    @always(before=lambda amount: amount > 0)
    def deposit(self, amount):
      self.balance += amount

Failed checks are logged or raised depending on the failure mode, which is
process-wide (setFailureMode, usingFailureMode) unless a contract gives its
own failureMode. Predicates and operations may be coroutines; a call involving
any of them returns an awaitable.
"""

import inspect

from always import config
from always.failure import (ConfigurationError, ContractViolation, Error,
                            FailureMode, InvariantViolationAfter,
                            InvariantViolationAtConstruction,
                            InvariantViolationBefore, PostconditionViolation,
                            PreconditionViolation, getFailureMode,
                            setFailureMode, usingFailureMode)
from always.invariant import wrapClass
from always.spec import ContractSpec, resolveSpec
from always.wrapper import wrapMethod, wrapProperty, wrapSetter

__all__ = [
  "always", "resolveSpec", "ContractSpec", "wrapMethod", "wrapSetter",
  "wrapProperty", "wrapClass", "FailureMode", "getFailureMode",
  "setFailureMode", "usingFailureMode", "Error", "ConfigurationError",
  "ContractViolation", "PreconditionViolation", "PostconditionViolation",
  "InvariantViolationBefore", "InvariantViolationAfter",
  "InvariantViolationAtConstruction",
]

def _label(func):
  return getattr(func, "__name__", None) or "anonymous"

def always(specOrInvariant=None, **fields):
  """Returns a decorator applying the contract to a class, a property (its
     setter), a static or class method, or any other callable. The
     declaration is resolved once, here."""
  spec = resolveSpec(specOrInvariant, **fields)

  def decorate(target):
    if not config.CHECK_CONTRACTS:
      return target
    if inspect.isclass(target):
      return wrapClass(target, spec)
    if isinstance(target, property):
      label = _label(target.fset or target.fget)
      return wrapProperty(target, label, spec)
    if isinstance(target, staticmethod):
      func = target.__func__
      return staticmethod(wrapMethod(func, _label(func), spec, bound=False))
    if isinstance(target, classmethod):
      func = target.__func__
      return classmethod(wrapMethod(func, _label(func), spec, bound=True))
    if callable(target):
      return wrapMethod(target, _label(target), spec)
    return target
  return decorate
