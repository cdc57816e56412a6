"""
TestSuite: an ordered group of TestCases with lifecycle hooks.
"""

from typing import Any, Callable, Iterable, List, Optional, Union

from .case import TestCase


class TestSuite:
    """Named group of cases. Registration order is execution order."""

    __test__ = False

    def __init__(
        self,
        name: str = "Unnamed Suite",
        description: str = "",
        category: Optional[str] = None,
        enabled: bool = True,
        timeout: Optional[float] = None,
        before_all: Optional[Callable] = None,
        after_all: Optional[Callable] = None,
        before_each: Optional[Callable] = None,
        after_each: Optional[Callable] = None,
        factory: Optional[str] = None,
    ):
        self.name = name
        self.description = description
        self.category = category
        self.enabled = enabled
        self.timeout = timeout
        self.tests: List[TestCase] = []
        self.before_all = before_all
        self.after_all = after_all
        self.before_each_hook = before_each
        self.after_each_hook = after_each
        # "module:callable" building an equivalent suite from a config; used by worker processes.
        self.factory = factory

    def __repr__(self) -> str:
        return f"TestSuite({self.name!r}, tests={len(self.tests)})"

    def add_test(self, test: Union[TestCase, Callable]) -> "TestSuite":
        """Add a TestCase, or wrap a bare function using its name."""
        if not isinstance(test, TestCase):
            name = getattr(test, "__name__", "Anonymous Test").replace("_", " ")
            test = TestCase(name, test)
        self.tests.append(test)
        return self

    def add_tests(self, tests: Iterable[Union[TestCase, Callable]]) -> "TestSuite":
        for t in tests:
            self.add_test(t)
        return self

    def test(self, name: str, check: Callable, **options: Any) -> "TestSuite":
        return self.add_test(TestCase(name, check, **options))

    def skip(self, name: str, check: Callable, **options: Any) -> "TestSuite":
        options["skip"] = True
        return self.add_test(TestCase(name, check, **options))

    def test_if(self, condition: Callable[[Any], bool], name: str, check: Callable, **options: Any) -> "TestSuite":
        return self.add_test(TestCase(name, check, condition=condition, **options))

    def before(self, fn: Callable) -> "TestSuite":
        self.before_all = fn
        return self

    def after(self, fn: Callable) -> "TestSuite":
        self.after_all = fn
        return self

    def before_each(self, fn: Callable) -> "TestSuite":
        self.before_each_hook = fn
        return self

    def after_each(self, fn: Callable) -> "TestSuite":
        self.after_each_hook = fn
        return self

    def enable(self) -> "TestSuite":
        self.enabled = True
        return self

    def disable(self) -> "TestSuite":
        self.enabled = False
        return self

    @property
    def test_count(self) -> int:
        return len(self.tests)

    def is_empty(self) -> bool:
        return not self.tests
