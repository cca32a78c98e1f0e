import unittest
from unittest import mock

from corebind import Container


class TestFactoryCaching(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_cached_factory_returns_same_instance(self):
        make = mock.Mock(side_effect=lambda: object())

        self.cont.factory("foo", make, cache=True)
        self.cont.bootstrap()
        a = self.cont.get("foo")
        b = self.cont.get("foo")

        assert b is a, "cached factory should return the first result"
        make.assert_called_once_with()

    def test_uncached_factory_returns_new_instances(self):
        make = mock.Mock(side_effect=lambda: object())

        self.cont.factory("foo", make)
        self.cont.bootstrap()
        a = self.cont.get("foo")
        b = self.cont.get("foo")

        assert b is not a, "uncached factory should run on every get"
        assert make.call_count == 2

    def test_cached_class_constructs_once(self):
        constructed = []

        class Foo:
            def __init__(self):
                constructed.append(self)

        self.cont.class_("foo", Foo, cache=True)
        self.cont.bootstrap()

        assert self.cont.get("foo") is self.cont.get("foo")
        assert len(constructed) == 1

    def test_uncached_class_constructs_each_time(self):
        class Foo: ...

        self.cont.class_("foo", Foo)
        self.cont.bootstrap()

        a = self.cont.get("foo")
        b = self.cont.get("foo")
        assert isinstance(a, Foo)
        assert b is not a

    def test_cached_factory_keeps_falsy_result(self):
        make = mock.Mock(return_value=None)

        self.cont.factory("foo", make, cache=True)
        self.cont.bootstrap()
        self.cont.get("foo")
        self.cont.get("foo")

        make.assert_called_once_with()

    def test_value_always_returns_the_registered_object(self):
        foo = object()

        self.cont.value("foo", foo)
        self.cont.bootstrap()

        assert self.cont.get("foo") is foo
        assert self.cont.get("foo") is foo

    def test_cached_parent_factory_is_shared_with_children(self):
        child = self.cont.create_child()
        self.cont.factory("foo", object, cache=True)
        self.cont.bootstrap()

        assert child.get("foo") is self.cont.get("foo")
