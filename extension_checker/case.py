"""
TestCase: one named check. A check passes by returning and fails by raising.
"""

import asyncio
import inspect
import re
from concurrent.futures import Executor
from typing import Any, Callable, Dict, Iterable, List, Optional, Pattern, Union

from .errors import ValidationError
from .issue import Severity


async def call_maybe_async(fn: Callable, *args: Any, executor: Optional[Executor] = None) -> Any:
    """Await coroutine functions; run plain callables on ``executor`` (the loop default if None)."""
    if inspect.iscoroutinefunction(fn):
        return await fn(*args)
    result = await asyncio.get_running_loop().run_in_executor(executor, fn, *args)
    if inspect.isawaitable(result):
        return await result
    return result


class TestCase:
    """A single check with skip metadata."""

    __test__ = False

    def __init__(
        self,
        name: str,
        check: Callable,
        description: str = "",
        skip: bool = False,
        condition: Optional[Callable[[Any], bool]] = None,
        timeout: Optional[float] = None,
        tags: Optional[Iterable[str]] = None,
        severity: Union[Severity, str] = Severity.ERROR,
        metadata: Optional[Dict[str, Any]] = None,
    ):
        if not callable(check):
            raise TypeError(f"Test '{name}' check must be callable")
        self.name = name
        self.check = check
        self.description = description
        self.skip = skip
        self.condition = condition
        self.timeout = timeout
        self.tags: List[str] = list(tags or [])
        self.severity = severity if isinstance(severity, Severity) else Severity.parse(severity)
        self.metadata: Dict[str, Any] = dict(metadata or {})

    def __repr__(self) -> str:
        return f"TestCase({self.name!r})"

    async def run(self, context: Any, executor: Optional[Executor] = None) -> None:
        """Run the check. Any exception propagates as the failure signal."""
        await call_maybe_async(self.check, context, executor=executor)

    def should_skip(self, config: Any) -> bool:
        if self.skip:
            return True
        if self.condition is not None:
            return not self.condition(config)
        return False

    def has_tag(self, tag: str) -> bool:
        return tag in self.tags

    # --- builders ---

    @classmethod
    def create(cls, name: str, check: Callable, **options: Any) -> "TestCase":
        return cls(name, check, **options)

    @classmethod
    def assertion(cls, name: str, predicate: Callable, message: Optional[str] = None, **options: Any) -> "TestCase":
        """Fails when ``predicate(context)`` is falsy."""
        async def check(context):
            if not await call_maybe_async(predicate, context):
                raise ValidationError(message or f"Assertion failed: {name}")
        return cls(name, check, **options)

    @classmethod
    def expect(cls, name: str, getter: Callable, expected: Any, **options: Any) -> "TestCase":
        async def check(context):
            actual = await call_maybe_async(getter, context)
            if actual != expected:
                raise ValidationError(f"Expected {expected!r} but got {actual!r}")
        return cls(name, check, **options)

    @classmethod
    def match(cls, name: str, getter: Callable, pattern: Union[str, Pattern], **options: Any) -> "TestCase":
        regex = re.compile(pattern) if isinstance(pattern, str) else pattern

        async def check(context):
            value = await call_maybe_async(getter, context)
            if not regex.search(str(value)):
                raise ValidationError(f"Value {value!r} does not match pattern {regex.pattern!r}")
        return cls(name, check, **options)

    @classmethod
    def exists(cls, name: str, checker: Callable, **options: Any) -> "TestCase":
        async def check(context):
            if not await call_maybe_async(checker, context):
                raise ValidationError(f"{name} does not exist")
        return cls(name, check, **options)

    @classmethod
    def range(cls, name: str, getter: Callable, minimum: float, maximum: float, **options: Any) -> "TestCase":
        async def check(context):
            value = await call_maybe_async(getter, context)
            if value < minimum or value > maximum:
                raise ValidationError(f"Value {value} is out of range [{minimum}, {maximum}]")
        return cls(name, check, **options)
