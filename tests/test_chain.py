"""Tests for the wrap relation between error identities."""

from faultroute.chain import WrappedError, describe, is_identity, iter_chain, matches, wrap
from tests.factories import ErrBase, ErrMoreSpecific, ErrSpecific, NotFoundError, UserNotFoundError


def test_identity_matches_itself() -> None:
    assert matches(ErrBase, ErrBase)
    assert matches(NotFoundError, NotFoundError)


def test_wrapped_error_matches_everything_it_wraps() -> None:
    assert matches(ErrSpecific, ErrBase)
    assert matches(ErrMoreSpecific, ErrSpecific)
    assert matches(ErrMoreSpecific, ErrBase)


def test_wrapped_relation_is_one_way() -> None:
    assert not matches(ErrBase, ErrSpecific)
    assert not matches(ErrSpecific, ErrMoreSpecific)


def test_unrelated_errors_do_not_match() -> None:
    assert not matches(ValueError("base error"), ErrBase)
    assert not matches(ErrBase, ValueError)


def test_raise_from_counts_as_wrapping() -> None:
    try:
        try:
            raise ErrSpecific
        except WrappedError as exc:
            raise RuntimeError("lookup failed") from exc
    except RuntimeError as err:
        caught = err

    assert matches(caught, ErrSpecific)
    assert matches(caught, ErrBase)


def test_implicit_context_is_not_followed() -> None:
    try:
        try:
            raise ErrBase
        except LookupError:
            raise RuntimeError("while handling")  # noqa: B904
    except RuntimeError as err:
        caught = err

    assert caught.__context__ is ErrBase
    assert not matches(caught, ErrBase)


def test_class_target_matches_instances_and_subclasses() -> None:
    assert matches(UserNotFoundError("u"), NotFoundError)
    assert matches(UserNotFoundError, NotFoundError)
    assert not matches(NotFoundError, UserNotFoundError)
    assert not matches(NotFoundError("n"), UserNotFoundError)


def test_class_target_matches_anywhere_in_the_chain() -> None:
    err = wrap(UserNotFoundError("user 42"), "request failed")
    assert matches(err, NotFoundError)
    # A class never wraps a particular instance
    assert not matches(NotFoundError, ErrBase)


def test_exception_group_matches_its_members() -> None:
    group = ExceptionGroup("several", [ValueError("v"), ErrSpecific])
    assert matches(group, ErrSpecific)
    assert matches(group, ErrBase)
    assert matches(group, ValueError)
    assert not matches(group, KeyError)


def test_iter_chain_follows_causes_in_order() -> None:
    assert list(iter_chain(ErrMoreSpecific)) == [ErrMoreSpecific, ErrSpecific, ErrBase]
    assert list(iter_chain(NotFoundError)) == [NotFoundError]


def test_iter_chain_terminates_on_cycles() -> None:
    first, second = ValueError("first"), ValueError("second")
    first.__cause__ = second
    second.__cause__ = first

    assert list(iter_chain(first)) == [first, second]
    assert not matches(first, KeyError)


def test_wrap_builds_readable_message() -> None:
    err = wrap(ErrBase, "specific")
    assert isinstance(err, WrappedError)
    assert str(err) == "specific: base error"
    assert err.__cause__ is ErrBase


def test_wrap_with_custom_class() -> None:
    err = wrap(ErrBase, "lookup failed", cls=RuntimeError)
    assert type(err) is RuntimeError
    assert matches(err, ErrBase)


def test_is_identity() -> None:
    assert is_identity(ErrBase)
    assert is_identity(NotFoundError)
    assert not is_identity(None)
    assert not is_identity("base error")
    assert not is_identity(int)


def test_describe() -> None:
    assert describe(ErrBase) == "LookupError('base error')"
    assert describe(UserNotFoundError) == "UserNotFoundError"
