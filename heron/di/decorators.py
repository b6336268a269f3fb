"""
Decorators and injection markers for DI usage.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Type, TypeVar, Union

from .scopes import ServiceScope


T = TypeVar("T")


@dataclass(frozen=True)
class Inject:
    """
    Injection metadata marker.

    Usage:
        def __init__(self, repo: Annotated[UserRepo, Inject("users.repo")]):
            ...
    """

    token: Optional[Union[Type, str]] = None


def injectable(
    cls: Optional[Type[T]] = None,
    *,
    scope: Union[ServiceScope, str] = ServiceScope.SINGLETON,
) -> Union[Type[T], Callable[[Type[T]], Type[T]]]:
    """
    Mark a class as a DI service.

    Works bare (``@injectable``) or with options
    (``@injectable(scope=ServiceScope.TRANSIENT)``). Guards, pipes,
    interceptors and filters use the same marker.

    Example:
        @injectable
        class UserService:
            def __init__(self, repo: UserRepo):
                self.repo = repo
    """
    def decorator(target: Type[T]) -> Type[T]:
        target.__di_scope__ = ServiceScope(scope)  # type: ignore
        target.__di_injectable__ = True  # type: ignore
        return target

    if cls is not None:
        return decorator(cls)
    return decorator
