"""Resolve an operation name, normalize its arguments and run it over OSC."""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Mapping, Optional, Tuple

from jsonschema import Draft202012Validator
from jsonschema.exceptions import SchemaError

from .api._shared import envelope_error, envelope_ok
from .api.validators import argument_validator, validate_arguments
from .catalog import Catalog, Composite, FireAndForget, Operation, RequestResponse
from .features import PROCEDURES
from .features.health import HEALTH_CHECK
from .osc.errors import ReplyTimeoutError, TransportError
from .osc.transport import BaseEndpoint
from .params import clamp_unit, merge_defaults, ordered_values
from .utils.errors import (
    DispatchError,
    ErrorCode,
    InvalidArgumentsError,
    UnknownOperationError,
)
from .utils.logging import request_scope

logger = logging.getLogger("ableton_bridge.dispatcher")


class EndpointSession:
    """:class:`~ableton_bridge.features.OscSession` backed by an endpoint."""

    def __init__(self, endpoint: BaseEndpoint) -> None:
        self._endpoint = endpoint

    @property
    def offline(self) -> bool:
        return self._endpoint.offline

    def fire(self, address: str, *args: object) -> None:
        self._endpoint.send(address, *args)

    async def query(self, address: str, *args: object) -> Tuple[object, ...]:
        return await self._endpoint.request(address, *args)

    async def settle(self, seconds: float) -> None:
        if self.offline:
            return
        await asyncio.sleep(seconds)


class CommandDispatcher:
    """Turn ``(operation, arguments)`` into protocol sends and a result.

    The operation table is fixed at construction: every catalog entry with
    an OSC mapping, overridden by any registered procedure of the same
    name, plus ``health_check``.
    """

    def __init__(
        self,
        catalog: Catalog,
        *,
        endpoint: BaseEndpoint,
        procedures: Optional[Mapping[str, Composite]] = None,
    ) -> None:
        self.catalog = catalog
        self.endpoint = endpoint
        self.session = EndpointSession(endpoint)
        table = PROCEDURES if procedures is None else procedures

        operations: Dict[str, Operation] = dict(catalog.operations)
        for name in catalog.names:
            if name in table:
                operations[name] = table[name]
        if HEALTH_CHECK in table:
            operations[HEALTH_CHECK] = table[HEALTH_CHECK]
        self._operations = operations

        self._validators: Dict[str, Draft202012Validator] = {}
        for tool in catalog.tools:
            try:
                self._validators[tool.name] = argument_validator(tool.input_schema)
            except SchemaError as exc:
                logger.warning(
                    "Tool %s has an invalid input_schema; arguments will not be validated: %s",
                    tool.name,
                    exc.message,
                )

    @property
    def operations(self) -> Mapping[str, Operation]:
        return dict(self._operations)

    def resolve(self, name: str) -> Operation:
        operation = self._operations.get(name)
        if operation is not None:
            return operation
        if name in self.catalog:
            raise UnknownOperationError(
                name,
                f"Operation '{name}' is declared in the catalog but has no "
                "OSC mapping or procedure",
            )
        raise UnknownOperationError(name)

    def normalize(
        self, operation: Operation, arguments: Optional[Mapping[str, Any]]
    ) -> Tuple[Dict[str, Any], List[Any]]:
        """Merge defaults, check required params, clamp and validate.

        Runs entirely before any send, so a rejected call has no effect on
        the peer. Returns the merged argument record and the values of the
        declared params in order.
        """

        if arguments is None:
            arguments = {}
        if not isinstance(arguments, Mapping):
            raise InvalidArgumentsError(operation.name, ["arguments must be an object"])

        merged = merge_defaults(operation.defaults, arguments)
        ordered_values(operation.name, operation.params, merged)

        for name in sorted(operation.normalized):
            if name not in merged:
                continue
            try:
                merged[name] = clamp_unit(merged[name], name=name)
            except ValueError as exc:
                raise InvalidArgumentsError(operation.name, [str(exc)]) from None

        validator = self._validators.get(operation.name)
        if validator is not None:
            valid, problems = validate_arguments(validator, merged)
            if not valid:
                raise InvalidArgumentsError(operation.name, problems)

        return merged, ordered_values(operation.name, operation.params, merged)

    async def execute(
        self, operation: Operation, arguments: Dict[str, Any], values: List[Any]
    ) -> object:
        if isinstance(operation, FireAndForget):
            self.endpoint.send(operation.address, *values)
            return f"Command sent: {operation.address}"
        if isinstance(operation, RequestResponse):
            reply = await self.endpoint.request(operation.address, *values)
            return list(reply)
        if isinstance(operation, Composite):
            return await operation.procedure(self.session, arguments)
        raise TypeError(f"unsupported operation type {type(operation).__name__}")

    async def call(self, name: str, arguments: Optional[Mapping[str, Any]] = None) -> object:
        """Run ``name`` and return its raw result, raising on failure."""

        operation = self.resolve(name)
        merged, values = self.normalize(operation, arguments)
        return await self.execute(operation, merged, values)

    async def invoke(
        self, name: str, arguments: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, object]:
        """Run ``name`` and return a result envelope. Never raises."""

        with request_scope(
            name,
            logger=logger,
            extra={"operation": name, "offline": self.endpoint.offline},
        ) as scope:
            try:
                result = await self.call(name, arguments)
            except DispatchError as exc:
                scope.log(logging.INFO, "request.rejected", extra={"error": str(exc)})
                return envelope_error(exc.code, str(exc))
            except ReplyTimeoutError as exc:
                return envelope_error(ErrorCode.TIMEOUT, str(exc))
            except TransportError as exc:
                scope.log(logging.WARNING, "request.unavailable", extra={"error": str(exc)})
                return envelope_error(ErrorCode.UNAVAILABLE, str(exc))
            except (ValueError, TypeError) as exc:
                scope.log(logging.INFO, "request.rejected", extra={"error": str(exc)})
                return envelope_error(ErrorCode.INVALID_REQUEST, str(exc))
            except Exception as exc:
                logger.exception("request.internal_error", extra=scope.extra())
                return envelope_error(ErrorCode.INTERNAL, str(exc) or type(exc).__name__)
            return envelope_ok(result)


__all__ = ["CommandDispatcher", "EndpointSession"]
