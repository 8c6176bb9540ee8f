"""Authorization pipeline — guards and guard chains.

Learn: A guard is a small read-only step that runs before a handler.
It either fills one slot of the per-request RequestContext (who is
calling, which user or application the path points at), passes, or
rejects the request by raising one of the errors in devportal.errors.

Guards are composed per route into a GuardChain, which is used as a
FastAPI dependency:

    @router.get("/users/{userID}")
    async def get_user(ctx: RequestContext = Depends(SELF)):
        return ctx.target_user

Each guard declares the context slots it produces and consumes. The
chain checks at construction time (i.e. when the routes are defined,
at startup) that every consumed slot is produced by an earlier guard,
so a misordered chain fails loudly before serving a single request.
"""

from dataclasses import dataclass, field
from typing import Optional

from fastapi import Depends
from starlette.requests import Request

from devportal.auth.sessions import SessionResolver, bearer_token
from devportal.db.models import Application, User
from devportal.db.store import CredentialStore, get_store
from devportal.errors import AuthenticationError, AuthorizationError, NotFoundError

# Context slots
CALLER = "caller"
TARGET_USER = "target_user"
TARGET_APPLICATION = "target_application"

# Path value meaning "whoever the session belongs to"
ME = "@me"


class GuardChainError(Exception):
    """A chain consumes a context slot no earlier guard produces."""


@dataclass
class RequestContext:
    """What the guards resolved for this request.

    A slot can be populated with None: OptionalAuthenticate on an
    anonymous request leaves caller=None but still marks it populated.
    """

    caller: Optional[User] = None
    target_user: Optional[User] = None
    target_application: Optional[Application] = None
    populated: set[str] = field(default_factory=set)

    def bind(self, slot: str, value) -> None:
        setattr(self, slot, value)
        self.populated.add(slot)


class Guard:
    """Base guard. Subclasses set produces/consumes and implement run()."""

    produces: frozenset[str] = frozenset()
    consumes: frozenset[str] = frozenset()

    async def run(
        self, request: Request, context: RequestContext, store: CredentialStore
    ) -> None:
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class OptionalAuthenticate(Guard):
    """Bind the caller if a session token is supplied.

    No header → anonymous caller. A token that matches no session is
    rejected (403), it never falls back to anonymous.
    """

    produces = frozenset({CALLER})

    async def run(self, request, context, store):
        caller = await SessionResolver(store).resolve(bearer_token(request))
        context.bind(CALLER, caller)


class ResolveTargetUser(Guard):
    """Bind the user named by a path parameter, or the caller for "@me"."""

    produces = frozenset({TARGET_USER})

    def __init__(self, param: str = "userID"):
        self.param = param

    def __repr__(self) -> str:
        return f"ResolveTargetUser({self.param!r})"

    async def run(self, request, context, store):
        user_id = request.path_params.get(self.param, "")

        if user_id == ME:
            if context.caller is not None:
                context.bind(TARGET_USER, context.caller)
                return

            # Not authenticated earlier in the chain — resolve on our own.
            token = bearer_token(request)
            if not token:
                raise AuthenticationError("Missing Authorization header")
            context.bind(TARGET_USER, await SessionResolver(store).resolve(token))
            return

        user = await store.get_user_by_id(user_id)
        if user is None:
            raise NotFoundError("No user found by that ID")
        context.bind(TARGET_USER, user)


class RequireAuthenticated(Guard):
    consumes = frozenset({CALLER})

    async def run(self, request, context, store):
        if context.caller is None:
            raise AuthenticationError()


class RequireSelf(Guard):
    """Only the target user themself may pass."""

    consumes = frozenset({CALLER, TARGET_USER})

    async def run(self, request, context, store):
        if context.target_user is None:
            raise NotFoundError("User not found")
        if context.caller is None:
            raise AuthenticationError()
        if context.caller.id != context.target_user.id:
            raise AuthorizationError()


class ResolveApplication(Guard):
    produces = frozenset({TARGET_APPLICATION})

    def __init__(self, param: str = "applicationID"):
        self.param = param

    def __repr__(self) -> str:
        return f"ResolveApplication({self.param!r})"

    async def run(self, request, context, store):
        application = await store.get_application_by_id(
            request.path_params.get(self.param, "")
        )
        if application is None:
            raise NotFoundError("No application found by that ID")
        context.bind(TARGET_APPLICATION, application)


class RequireApplicationOwner(Guard):
    consumes = frozenset({CALLER, TARGET_APPLICATION})

    async def run(self, request, context, store):
        if context.caller is None:
            raise AuthenticationError()
        if context.caller.id != context.target_application.user_id:
            raise AuthorizationError("You do not have access to this application")


def validate_chain(guards: tuple[Guard, ...]) -> None:
    """Raise GuardChainError unless producers precede consumers."""
    available: set[str] = set()
    for position, guard in enumerate(guards):
        missing = guard.consumes - available
        if missing:
            raise GuardChainError(
                f"{guard!r} at position {position} consumes "
                f"{', '.join(sorted(missing))} before any guard produces it"
            )
        available |= guard.produces


class GuardChain:
    """An ordered, validated list of guards usable as a FastAPI dependency."""

    def __init__(self, *guards: Guard):
        validate_chain(guards)
        self.guards = guards

    @property
    def names(self) -> list[str]:
        return [type(guard).__name__ for guard in self.guards]

    def __repr__(self) -> str:
        return f"GuardChain({', '.join(repr(g) for g in self.guards)})"

    async def __call__(
        self,
        request: Request,
        store: CredentialStore = Depends(get_store),
    ) -> RequestContext:
        context = RequestContext()
        for guard in self.guards:
            await guard.run(request, context, store)
        return context


# ─── Route chains ────────────────────────────────────────

AUTHENTICATED = GuardChain(OptionalAuthenticate(), RequireAuthenticated())

SELF = GuardChain(
    OptionalAuthenticate(),
    ResolveTargetUser("userID"),
    RequireSelf(),
)

APPLICATION = GuardChain(
    OptionalAuthenticate(),
    ResolveApplication("applicationID"),
)

APPLICATION_OWNER = GuardChain(
    OptionalAuthenticate(),
    RequireAuthenticated(),
    ResolveApplication("applicationID"),
    RequireApplicationOwner(),
)
