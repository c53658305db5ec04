"""
Class-level invariants. Adapted from the metaclass approach of:
http://people.csail.mit.edu/pgbovine/wiki/doku.php?id=pythonclassinvariants

wrapClass derives a class from the one given whose constructor checks the
invariant after the base constructor has run, and whose methods and property
setters (those defined on the base itself, not on its ancestors) check the
invariant before and after every call. Property getters are never checked;
reading does not mutate.

Static methods and class methods are left alone since they have no instance to
check, as are the constructor slots and the attribute-access hooks, which the
invariant itself relies on. So are the conversion hooks (__repr__, __bool__,
__len__, __hash__ and the like): the interpreter rejects anything but the
right type from them, and a skipped call returns None.
"""

import functools
import inspect

from always import wrapper
from always.failure import ConfigurationError
from always.spec import ContractSpec

_UNWRAPPED = frozenset(("__init__", "__new__", "__init_subclass__",
                        "__class_getitem__", "__getattribute__",
                        "__getattr__", "__setattr__", "__delattr__",
                        "__del__"))

# Hooks whose return type the interpreter checks.
_CONVERSIONS = frozenset(("__repr__", "__str__", "__bytes__", "__format__",
                          "__bool__", "__len__", "__length_hint__",
                          "__hash__", "__int__", "__float__", "__complex__",
                          "__index__", "__sizeof__", "__fspath__"))

def memberSpec(spec):
  """The spec every member shares: the class invariant only, with the class's
     trace and failure mode settings."""
  return ContractSpec(constant=spec.constant, trace=spec.trace,
                      failureMode=spec.failureMode)

def wrapMembers(base, spec):
  """Returns {name: replacement} for every member of base to be checked."""
  replacements = {}
  for (name, member) in vars(base).items():
    if name in _UNWRAPPED or name in _CONVERSIONS:
      continue
    if isinstance(member, property):
      if member.fset is not None:
        replacements[name] = wrapper.wrapProperty(member, name, spec)
    elif inspect.isfunction(member) or \
         isinstance(member, wrapper.CheckedFunction):
      replacements[name] = wrapper.wrapMethod(member, name, spec, bound=True)
  return replacements

def constructor(base, spec):
  init = base.__init__

  @functools.wraps(init)
  def __init__(self, *args, **kwargs):
    if init is object.__init__:
      # The arguments were meant for __new__ (namedtuples and the like).
      init(self)
    else:
      init(self, *args, **kwargs)
    wrapper.checkConstruction(self, spec)
  return __init__

def wrapClass(base, spec):
  """Returns a subclass of base enforcing spec.constant on construction and
     around every method and setter. Raises ConfigurationError when spec has
     no invariant."""
  if spec.constant is None:
    raise ConfigurationError(
        "A class contract on %s requires an invariant (constant=...)."
        % base.__qualname__)

  shared = memberSpec(spec)
  attrs = wrapMembers(base, shared)
  attrs.update({
    "__init__": constructor(base, shared),
    "__module__": base.__module__,
    "__qualname__": base.__qualname__,
    "__doc__": base.__doc__,
    "__contract__": shared,
  })
  return type(base)(base.__name__, (base,), attrs)
