"""Error identities and the wrap relation.

An identity is either a sentinel exception instance or an exception class.
An exception wraps another through explicit chaining (``raise X from Y`` or
:func:`wrap`), and an exception group wraps each of its members. Implicit
context (``__context__``) is not followed: only deliberate wrapping counts.

    ErrBase = LookupError("base error")
    ErrSpecific = wrap(ErrBase, "specific")

    matches(ErrSpecific, ErrBase)  # True
    matches(ErrBase, ErrSpecific)  # False
"""

from collections.abc import Iterator

type Identity = BaseException | type[BaseException]


class WrappedError(Exception):
    """Exception whose only purpose is to add a message on top of a cause."""


def wrap[E: BaseException](
    cause: BaseException,
    message: str,
    cls: type[E] = WrappedError,  # type: ignore[assignment]
) -> E:
    """Build an exception of ``cls`` with ``cause`` as its ``__cause__``.

    The message is rendered as ``"<message>: <cause>"`` so the full chain stays
    readable in ``str()``, the way formatted wrapping reads in logs.
    """
    err = cls(f"{message}: {cause}")
    err.__cause__ = cause
    return err


def iter_chain(err: Identity) -> Iterator[Identity]:
    """Yield ``err`` followed by everything it wraps, depth-first.

    Each exception object is yielded once, so a cyclic chain terminates.
    A class has no chain beyond itself.
    """
    if isinstance(err, type):
        yield err
        return

    seen: set[int] = set()
    stack: list[BaseException] = [err]
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        # Pushed in reverse so the cause is visited before group members.
        if isinstance(current, BaseExceptionGroup):
            stack.extend(reversed(current.exceptions))
        if current.__cause__ is not None:
            stack.append(current.__cause__)


def _link_matches(link: Identity, target: Identity) -> bool:
    if link is target:
        return True
    if isinstance(target, type):
        if isinstance(link, type):
            return issubclass(link, target)
        return isinstance(link, target)
    if isinstance(link, type):
        return False
    return link == target


def matches(err: Identity, target: Identity) -> bool:
    """Report whether ``err`` is ``target`` or wraps down to it.

    A class target matches any link that is an instance (or subclass) of it.
    """
    return any(_link_matches(link, target) for link in iter_chain(err))


def is_identity(value: object) -> bool:
    """Report whether ``value`` can be registered as an identity."""
    if isinstance(value, type):
        return issubclass(value, BaseException)
    return isinstance(value, BaseException)


def describe(identity: Identity) -> str:
    """Short human-readable label for logs and tree renderings."""
    if isinstance(identity, type):
        return identity.__qualname__
    return f"{type(identity).__name__}({str(identity)!r})"
