"""
Typed procedure registry.

Procedures are plain async functions registered as queries (reads) or
mutations (writes) together with the pydantic model of their input.
Routers nest by prefix, so `product.getAll` is `getAll` on the router
merged under "product".
"""
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, ValidationError

from storefront.errors import ErrorType
from storefront.exceptions import RPCError
from storefront.rpc.context import Context

ProcedureKind = Literal["query", "mutation"]
Handler = Callable[..., Awaitable[BaseModel]]


@dataclass
class Procedure:
    name: str
    kind: ProcedureKind
    handler: Handler
    input_model: type[BaseModel] | None = None
    description: str = ""

    def parse_input(self, raw: Any) -> BaseModel | None:
        """Validate raw JSON input, raising BAD_REQUEST with pydantic issues."""
        if self.input_model is None:
            return None
        try:
            return self.input_model.model_validate({} if raw is None else raw)
        except ValidationError as e:
            issues = [
                {
                    "path": [str(p) for p in err["loc"]],
                    "message": err["msg"],
                    "type": err["type"],
                }
                for err in e.errors(include_url=False, include_context=False, include_input=False)
            ]
            raise RPCError(ErrorType.BAD_REQUEST, "Invalid input", self.name, issues)

    async def call(self, ctx: Context, raw: Any = None) -> BaseModel:
        payload = self.parse_input(raw)
        if payload is None:
            return await self.handler(ctx)
        return await self.handler(ctx, payload)

    def input_schema(self) -> dict | None:
        if self.input_model is None:
            return None
        return self.input_model.model_json_schema(by_alias=True)


class RPCRouter:
    def __init__(self):
        self.procedures: dict[str, Procedure] = {}

    def _register(self, kind: ProcedureKind, name: str, input_model: type[BaseModel] | None):
        def decorator(handler: Handler) -> Handler:
            if name in self.procedures:
                raise ValueError(f"Procedure already registered: {name}")
            description = (handler.__doc__ or "").strip().splitlines()
            self.procedures[name] = Procedure(
                name=name,
                kind=kind,
                handler=handler,
                input_model=input_model,
                description=description[0] if description else "",
            )
            return handler
        return decorator

    def query(self, name: str, input: type[BaseModel] | None = None):
        return self._register("query", name, input)

    def mutation(self, name: str, input: type[BaseModel] | None = None):
        return self._register("mutation", name, input)

    def merge(self, prefix: str, router: "RPCRouter") -> "RPCRouter":
        """Mount another router's procedures under `prefix.`."""
        for name, proc in router.procedures.items():
            full_name = f"{prefix}.{name}"
            if full_name in self.procedures:
                raise ValueError(f"Procedure already registered: {full_name}")
            self.procedures[full_name] = Procedure(
                name=full_name,
                kind=proc.kind,
                handler=proc.handler,
                input_model=proc.input_model,
                description=proc.description,
            )
        return self

    def get(self, name: str, kind: ProcedureKind) -> Procedure:
        """Look up a procedure by full name, checking it is called the right way."""
        proc = self.procedures.get(name)
        if proc is None:
            raise RPCError(ErrorType.PROCEDURE_NOT_FOUND, f'No "{kind}"-procedure on path "{name}"', name)
        if proc.kind != kind:
            raise RPCError(
                ErrorType.METHOD_NOT_SUPPORTED,
                f'Unsupported {"GET" if kind == "query" else "POST"}-request to {proc.kind} procedure at path "{name}"',
                name,
            )
        return proc
