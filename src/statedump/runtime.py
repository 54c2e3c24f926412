"""
Reflection provider and root set for the running CPython interpreter.

Classification
| Python object                                            | Variant            |
|----------------------------------------------------------|--------------------|
| None, bool, int, float, str, bytes, bytearray            | scalar variants    |
| dict, mappingproxy, list, tuple, deque, set, frozenset   | container          |
| function, method, builtin, method descriptor, code       | callable           |
| generator, coroutine, async generator, threading.Thread  | execution-context  |
| anything else (instances, classes, modules, ...)         | opaque-blob        |

Classification goes through ``type(obj)`` rather than ``isinstance`` so an
object overriding ``__class__`` cannot disguise itself, and container children
are read through the builtin base methods so user overrides of ``items`` or
``__iter__`` never run. Descriptions use the type name and address only; user
``__repr__``/``__str__`` are never called.

Execution contexts
- A thread's stack is read from ``sys._current_frames()``, innermost frame
  first (depth 1). A suspended generator/coroutine contributes its own frame.
- The frame callable is the frame's code object; locals come from ``f_locals``.
- The current thread's ``sys.gettrace()`` (else ``sys.getprofile()``) is its hook.
"""

from __future__ import annotations

import builtins
import collections
import inspect
import logging
import sys
import threading
import types
from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from statedump.core.grammar import Relation, Variant
from statedump.core.provider import Child
from statedump.dump import DumpSummary, dump_state
from statedump.engine.walker import CancelCheck
from statedump.io.config import DumpSettings

logger = logging.getLogger(__name__)

__all__ = [
    "PythonProvider",
    "python_roots",
    "dump_python_state",
]

_MAPPINGS: tuple[type, ...] = (dict, types.MappingProxyType)
_SEQUENCES: tuple[type, ...] = (list, tuple, collections.deque)
_SETS: tuple[type, ...] = (set, frozenset)
_CONTAINERS: tuple[type, ...] = _MAPPINGS + _SEQUENCES + _SETS

_CALLABLES: tuple[type, ...] = (
    types.FunctionType,
    types.MethodType,
    types.BuiltinFunctionType,
    types.MethodWrapperType,
    types.WrapperDescriptorType,
    types.MethodDescriptorType,
    types.ClassMethodDescriptorType,
    types.CodeType,
)

# Modules whose functions are on the stack while a dump runs.
_DUMPER_MODULES: tuple[str, ...] = (
    __name__,
    "statedump.dump",
    "statedump.engine.walker",
    "statedump.engine.identity",
    "statedump.engine.encode",
    "statedump.io.emit",
    "statedump.io.sink",
)

# Attribute prefix of each coroutine-like type (gi_frame, cr_running, ...).
_COROUTINE_PREFIX: dict[type, str] = {
    types.GeneratorType: "gi",
    types.CoroutineType: "cr",
    types.AsyncGeneratorType: "ag",
}


def _first_base(cls: type, bases: tuple[type, ...]) -> type | None:
    for base in bases:
        if issubclass(cls, base):
            return base
    return None


def _frames(frame: types.FrameType | None) -> Iterator[types.FrameType]:
    while frame is not None:
        yield frame
        frame = frame.f_back


def _frame_locals(frame: types.FrameType) -> Iterator[tuple[str, Any]]:
    yield from list(frame.f_locals.items())


def _code_meta(code: types.CodeType, name: str, qualname: str) -> list[tuple[str, Any]]:
    return [
        ("name", name),
        ("qualname", qualname),
        ("source", code.co_filename),
        ("linedefined", code.co_firstlineno),
        ("nparams", code.co_argcount + code.co_kwonlyargcount),
        ("isvararg", bool(code.co_flags & inspect.CO_VARARGS)),
    ]


class PythonProvider:
    """
    ReflectionProvider over live CPython objects.

    The provider is stateless; one instance may serve several sequential dumps.

    Examples:
        >>> from statedump.core.grammar import Variant
        >>> PythonProvider().classify({}) is Variant.CONTAINER
        True
        >>> PythonProvider().classify(len) is Variant.CALLABLE
        True
    """

    def classify(self, obj: Any) -> Variant:
        cls = type(obj)
        if obj is None:
            return Variant.ABSENT
        if issubclass(cls, bool):
            return Variant.BOOLEAN
        if issubclass(cls, (int, float)):
            return Variant.NUMBER
        if issubclass(cls, (str, bytes, bytearray)):
            return Variant.STRING
        if issubclass(cls, _CONTAINERS):
            return Variant.CONTAINER
        if issubclass(cls, _CALLABLES):
            return Variant.CALLABLE
        if cls in _COROUTINE_PREFIX or issubclass(cls, threading.Thread):
            return Variant.EXECUTION_CONTEXT
        return Variant.OPAQUE_BLOB

    # ------------------------------------------------------------------
    # Children
    # ------------------------------------------------------------------
    def children(self, obj: Any) -> Iterable[Child]:
        variant = self.classify(obj)
        if variant is Variant.CONTAINER:
            return self._container_children(obj)
        if variant is Variant.CALLABLE:
            return self._callable_children(obj)
        if variant is Variant.EXECUTION_CONTEXT:
            return self._context_children(obj)
        if variant is Variant.OPAQUE_BLOB:
            return self._blob_children(obj)
        return ()

    def _container_children(self, obj: Any) -> Iterator[Child]:
        cls = type(obj)
        base = _first_base(cls, _MAPPINGS)
        if base is not None:
            for key, value in list(base.items(obj)):
                yield Child(Relation.KV, key, value)
            return
        base = _first_base(cls, _SEQUENCES)
        if base is not None:
            for index, value in enumerate(list(base.__iter__(obj))):
                yield Child(Relation.KV, index, value)
            return
        base = _first_base(cls, _SETS)
        if base is not None:
            for member in list(base.__iter__(obj)):
                yield Child(Relation.KV, member, True)

    def _callable_children(self, obj: Any) -> Iterator[Child]:
        if isinstance(obj, types.FunctionType):
            cells = obj.__closure__ or ()
            for name, cell in zip(obj.__code__.co_freevars, cells, strict=False):
                try:
                    value = cell.cell_contents
                except ValueError:
                    value = None  # empty cell
                yield Child(Relation.CAPTURED_VARIABLE, name, value)
        elif isinstance(obj, types.MethodType):
            yield Child(Relation.CAPTURED_VARIABLE, "__self__", obj.__self__)
            yield Child(Relation.CAPTURED_VARIABLE, "__func__", obj.__func__)
        elif not isinstance(obj, types.CodeType):
            bound = getattr(obj, "__self__", None)
            if bound is not None:
                yield Child(Relation.CAPTURED_VARIABLE, "__self__", bound)

    def _context_children(self, obj: Any) -> Iterator[Child]:
        if isinstance(obj, threading.Thread):
            if obj is threading.current_thread():
                trace, profile = sys.gettrace(), sys.getprofile()
                if trace is not None:
                    yield Child(Relation.HOOK, trace, ("trace", 0))
                elif profile is not None:
                    yield Child(Relation.HOOK, profile, ("profile", 0))
            top = sys._current_frames().get(obj.ident) if obj.ident is not None else None
            frames = _frames(top)
        else:
            prefix = _COROUTINE_PREFIX[type(obj)]
            frame = getattr(obj, f"{prefix}_frame", None)
            frames = iter(() if frame is None else (frame,))
        for frame in frames:
            yield Child(Relation.STACK_CALLABLE, frame.f_code, _frame_locals(frame))

    def _blob_children(self, obj: Any) -> Iterator[Child]:
        try:
            attrs = object.__getattribute__(obj, "__dict__")
        except (AttributeError, TypeError):
            return
        yield Child(Relation.ATTACHED_VALUE, None, attrs)

    # ------------------------------------------------------------------
    # Vertex facts
    # ------------------------------------------------------------------
    def behavior_table(self, obj: Any) -> Any | None:
        cls = type(obj)
        if issubclass(cls, _CONTAINERS):
            return None if cls in _CONTAINERS else cls
        return cls

    def describe(self, obj: Any) -> str:
        return f"{type(obj).__name__}: 0x{id(obj):x}"

    def metadata(self, obj: Any) -> list[tuple[str, Any]]:
        if isinstance(obj, (threading.Thread, *_COROUTINE_PREFIX)):
            return [("status", self.status(obj))]
        if isinstance(obj, types.CodeType):
            return _code_meta(obj, obj.co_name, obj.co_qualname)
        func = obj.__func__ if isinstance(obj, types.MethodType) else obj
        if isinstance(func, types.FunctionType):
            return _code_meta(func.__code__, func.__name__, func.__qualname__)
        return [
            ("name", getattr(obj, "__name__", None)),
            ("module", getattr(obj, "__module__", None)),
        ]

    def status(self, obj: Any) -> str:
        """Execution status: ``suspended``, ``running``, ``normal`` or ``dead``."""
        if isinstance(obj, threading.Thread):
            if obj is threading.current_thread():
                return "running"
            if obj.is_alive():
                return "normal"
            return "dead" if obj.ident is not None else "suspended"
        prefix = _COROUTINE_PREFIX[type(obj)]
        if getattr(obj, f"{prefix}_running", False):
            return "running"
        if getattr(obj, f"{prefix}_frame", None) is None:
            return "dead"
        return "suspended"


def python_roots() -> dict[str, Any]:
    """
    Root set of the running interpreter, in dump order.

    Keys: ``globals`` (``__main__`` namespace), ``registry`` (``sys.modules``),
    ``mainthread``, ``currentthread``, ``builtins``, then one type object per
    primitive kind (``nil_type``, ``function_type``, ``string_type``,
    ``boolean_type``, ``number_type``, ``thread_type``).
    """
    main = sys.modules.get("__main__")
    return {
        "globals": vars(main) if main is not None else {},
        "registry": sys.modules,
        "mainthread": threading.main_thread(),
        "currentthread": threading.current_thread(),
        "builtins": vars(builtins),
        "nil_type": type(None),
        "function_type": types.FunctionType,
        "string_type": str,
        "boolean_type": bool,
        "number_type": int,
        "thread_type": threading.Thread,
    }


def _collect_code(obj: Any, out: list[types.CodeType]) -> None:
    code = getattr(obj, "__code__", None)
    if isinstance(code, types.CodeType):
        stack = [code]
        while stack:
            co = stack.pop()
            out.append(co)
            stack.extend(c for c in co.co_consts if isinstance(c, types.CodeType))
    wrapped = getattr(obj, "__wrapped__", None)
    if wrapped is not None and wrapped is not obj:
        _collect_code(wrapped, out)


def dumper_objects() -> list[Any]:
    """
    Objects hidden from a self-dump: the dump entry points and the code
    objects of every function that runs while a dump is in progress.
    """
    modules = [sys.modules[name] for name in _DUMPER_MODULES if name in sys.modules]
    code: list[types.CodeType] = []
    for module in modules:
        for value in list(vars(module).values()):
            if inspect.isfunction(value) and value.__module__ == module.__name__:
                _collect_code(value, code)
            elif inspect.isclass(value) and value.__module__ == module.__name__:
                for member in vars(value).values():
                    _collect_code(member, code)
    return [dump_python_state, dump_state, *code]


def dump_python_state(
    target: Any,
    *,
    settings: DumpSettings | None = None,
    roots: Mapping[str, Any] | None = None,
    cancel: CancelCheck | None = None,
) -> DumpSummary:
    """
    Dump the running interpreter (or a custom root set) with PythonProvider.

    Args:
        target: File path, writable text handle or print-style callable.
        settings (DumpSettings | None): Output settings (defaults to DumpSettings.load()).
        roots (Mapping[str, Any] | None): Root set; defaults to python_roots().
        cancel (CancelCheck | None): Cancellation check polled once per object.

    Returns:
        DumpSummary: Row counters.

    Notes:
        The dumper's own frames are skipped on the current thread's stack,
        with their locals, but still count towards frame depth.
    """
    roots = python_roots() if roots is None else roots
    exclude = dumper_objects()
    logger.debug("excluding %d dumper objects", len(exclude))
    return dump_state(target, roots, PythonProvider(), settings=settings, exclude=exclude, cancel=cancel)
