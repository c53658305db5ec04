"""
The evaluation engine. Wraps an operation so that every call runs, in order:

  1. the invariant against the receiver       (constant-before)
  2. the precondition against the arguments   (before / setter-before)
  3. the operation itself
  4. the postcondition against the result     (after / setter-after)
  5. the invariant against the receiver again (constant-after)

A failure at 1 or 2 skips the operation and the call returns None (log mode).
A failure at 4 or 5 still returns the result, since the operation has run.

The protocol exists once, as a generator yielding each stage as a call to make
(a predicate or the operation) and receiving back the call's settled value.
_drive makes the calls synchronously; the first awaitable it gets hands the
suspended generator over to _settle, a coroutine that awaits each pending value
and carries on with the same generator. So a call where nothing is asynchronous
stays synchronous, a call where anything is asynchronous returns a single
awaitable, and stages already settled are never evaluated again.

The calls are made by the drivers rather than inside the generator so that an
operation raising StopIteration (a checked __next__) reaches its caller as is.
"""

import contextvars
import functools
import inspect
import types

from always import failure
from always import trace
from always.formatter import formatArgs, formatValue
from always.spec import isEmpty

ANONYMOUS = "<anonymous>"

# Receivers whose invariant is being evaluated right now, by id.
_checking = contextvars.ContextVar("always_checking", default=frozenset())

stage = functools.partial

def className(receiver):
  """Best-effort type name of receiver for messages and trace events."""
  if receiver is None:
    return ANONYMOUS
  try:
    if inspect.isclass(receiver):
      return receiver.__name__
    return type(receiver).__name__
  except Exception:
    return ANONYMOUS

def _evaluateConstant(constant, receiver):
  token = _checking.set(_checking.get() | {id(receiver)})
  try:
    answer = constant(receiver)
  finally:
    _checking.reset(token)
  if inspect.isawaitable(answer):
    return _Guarded(answer, receiver)
  return answer

class _Guarded(object):
  """A pending invariant result. The receiver stays marked as being checked
     until the result has been awaited."""

  def __init__(self, pending, receiver):
    self._pending = pending
    self._receiver = receiver

  def __await__(self):
    token = _checking.set(_checking.get() | {id(self._receiver)})
    try:
      return (yield from self._pending.__await__())
    finally:
      _checking.reset(token)

  def close(self):
    _discard(self._pending)

  def __repr__(self):
    return repr(self._pending)

def _activeConstant(spec, receiver):
  """The invariant to check on this call, or None. Calls made from inside an
     invariant on the receiver it is checking are not checked again."""
  if spec.constant is None:
    return None
  if receiver is not None and id(receiver) in _checking.get():
    return None
  return spec.constant

def _report(spec, message, info):
  trace.emit(spec.trace, info)
  failure.handleFailure(failure.effectiveMode(spec.failureMode),
                        failure.violation(message, info))

def _methodSteps(original, label, spec, receiver, callArgs, args, kwargs):
  cls = className(receiver)
  constant = _activeConstant(spec, receiver)

  if constant is not None:
    if not (yield stage(_evaluateConstant, constant, receiver)):
      _report(spec, "Constant failed before: %s.%s(%s)"
                    % (cls, label, formatArgs(args, kwargs)),
              trace.event(trace.CONSTANT_BEFORE, cls, label, args=args,
                          kwargs=kwargs))
      return None

  if spec.before is not None:
    if not (yield stage(spec.before, *args, **kwargs)):
      _report(spec, "Before failed: %s.%s(%s)"
                    % (cls, label, formatArgs(args, kwargs)),
              trace.event(trace.BEFORE, cls, label, args=args, kwargs=kwargs))
      return None

  result = yield stage(original, *callArgs, **kwargs)

  if spec.after is not None:
    if not (yield stage(spec.after, result, *args, **kwargs)):
      _report(spec, "After failed: %s.%s(%s) -> %s"
                    % (cls, label, formatArgs(args, kwargs),
                       formatValue(result)),
              trace.event(trace.AFTER, cls, label, args=args, kwargs=kwargs,
                          result=result))
      return result

  if constant is not None:
    if not (yield stage(_evaluateConstant, constant, receiver)):
      _report(spec, "Constant failed after: %s.%s(%s) -> %s"
                    % (cls, label, formatArgs(args, kwargs),
                       formatValue(result)),
              trace.event(trace.CONSTANT_AFTER, cls, label, args=args,
                          kwargs=kwargs, result=result))

  return result

def _setterSteps(original, label, spec, receiver, value):
  cls = className(receiver)
  constant = _activeConstant(spec, receiver)

  if constant is not None:
    if not (yield stage(_evaluateConstant, constant, receiver)):
      _report(spec, "Constant failed before: %s.set %s(%s)"
                    % (cls, label, formatValue(value)),
              trace.event(trace.CONSTANT_BEFORE, cls, "%s (setter)" % label,
                          value=value))
      return None

  if spec.before is not None:
    if not (yield stage(spec.before, value)):
      _report(spec, "Before failed: %s.set %s(%s)"
                    % (cls, label, formatValue(value)),
              trace.event(trace.SETTER_BEFORE, cls, label, value=value))
      return None

  result = yield stage(original, receiver, value)

  if spec.after is not None:
    if not (yield stage(spec.after, result, value)):
      _report(spec, "After failed: %s.set %s(%s) -> %s"
                    % (cls, label, formatValue(value), formatValue(result)),
              trace.event(trace.SETTER_AFTER, cls, label, value=value,
                          result=result))
      return result

  if constant is not None:
    if not (yield stage(_evaluateConstant, constant, receiver)):
      _report(spec, "Constant failed after: %s.set %s(%s) -> %s"
                    % (cls, label, formatValue(value), formatValue(result)),
              trace.event(trace.CONSTANT_AFTER, cls, "%s (setter)" % label,
                          value=value, result=result))

  return result

def _constructorSteps(instance, spec):
  if not (yield stage(_evaluateConstant, spec.constant, instance)):
    cls = className(instance)
    _report(spec, "Constant failed after constructor: %s" % cls,
            trace.event(trace.CONSTANT_CONSTRUCTOR, cls))
  return instance

def _discard(pending):
  close = getattr(pending, "close", None)
  if close is not None:
    close()

def _drive(steps, synchronousOnly=None):
  """Runs steps until they finish or yield an awaitable. In the latter case
     returns a coroutine finishing the same steps, unless synchronousOnly
     (a description of the operation) is given, in which case a pending value
     is a ConfigurationError."""
  value = None
  while True:
    try:
      call = steps.send(value)
    except StopIteration as stop:
      return stop.value
    value = call()
    if inspect.isawaitable(value):
      if synchronousOnly is None:
        return _settle(steps, value)
      _discard(value)
      steps.close()
      raise failure.ConfigurationError(
          "%s must settle synchronously but produced %s."
          % (synchronousOnly, formatValue(value)))

async def _settle(steps, value):
  """Finishes steps, awaiting every pending value in order."""
  while True:
    if inspect.isawaitable(value):
      value = await value
    try:
      call = steps.send(value)
    except StopIteration as stop:
      return stop.value
    value = call()

def _split(args, bound):
  if bound and args:
    return args[0], args[1:]
  return None, args

def _checked(original, label, spec, bound):
  if inspect.iscoroutinefunction(original):
    @functools.wraps(original)
    async def wrapped(*args, **kwargs):
      receiver, shown = _split(args, bound)
      return await _settle(_methodSteps(original, label, spec, receiver, args,
                                        shown, kwargs), None)
  else:
    @functools.wraps(original)
    def wrapped(*args, **kwargs):
      receiver, shown = _split(args, bound)
      return _drive(_methodSteps(original, label, spec, receiver, args, shown,
                                 kwargs))

  wrapped.__contract__ = spec
  return wrapped

class CheckedFunction(object):
  """A checked function that finds its receiver the way a function does.
     Called directly, including through staticmethod, it has none. Looked up
     on an instance it is bound to that instance, and looked up on a class
     it takes the receiver as its first positional argument."""

  def __init__(self, original, label, spec):
    functools.update_wrapper(self, original)
    self.__contract__ = spec
    self.asFunction = _checked(_variant(original, False), label, spec, False)
    self.asMethod = _checked(_variant(original, True), label, spec, True)

  def __call__(self, *args, **kwargs):
    return self.asFunction(*args, **kwargs)

  def __get__(self, instance, owner=None):
    if instance is None:
      return self.asMethod
    return types.MethodType(self.asMethod, instance)

  def __repr__(self):
    return "<checked function %s>" % getattr(self, "__qualname__", ANONYMOUS)

def _variant(original, bound):
  if isinstance(original, CheckedFunction):
    return original.asMethod if bound else original.asFunction
  return original

def wrapMethod(original, label, spec, bound=None):
  """Wraps original (a function or method) with the checks in spec. bound
     says whether the first positional argument is the receiver. When it is
     None the answer depends on how the result is reached, as for a plain
     function. A spec with nothing to check returns original itself."""
  if isEmpty(spec):
    return original
  if bound is None:
    return CheckedFunction(original, label, spec)
  return _checked(_variant(original, bound), label, spec, bound)

def wrapSetter(original, label, spec, synchronous=False):
  """Wraps original(receiver, value), the write half of an accessor. With
     synchronous=True every stage must settle without suspending."""
  if isEmpty(spec):
    return original

  @functools.wraps(original)
  def wrapped(receiver, value):
    what = "Setter %s.%s" % (className(receiver), label) if synchronous \
           else None
    return _drive(_setterSteps(original, label, spec, receiver, value), what)

  wrapped.__contract__ = spec
  return wrapped

def wrapProperty(prop, label, spec):
  """Returns prop with its setter wrapped. Reads and deletes are untouched."""
  if prop.fset is None or isEmpty(spec):
    return prop
  return property(prop.fget, wrapSetter(prop.fset, label, spec, True),
                  prop.fdel, prop.__doc__)

def checkConstruction(instance, spec):
  """Checks the invariant once on a freshly constructed instance."""
  _drive(_constructorSteps(instance, spec),
         "Invariant of %s at construction" % className(instance))
