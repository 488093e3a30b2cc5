"""
Network client shared by every topic service component.
"""

from __future__ import annotations

import logging
import threading
from typing import TYPE_CHECKING, Any

import requests
from pydantic import ValidationError as PydanticValidationError

from hcsclient.client.domain.entities import EntityId, Timestamp
from hcsclient.client.transactions import TransferTransaction
from hcsclient.common import Configurable, setup_logger
from hcsclient.common.config import Config
from hcsclient.common.decorators import requires_operator
from hcsclient.common.exceptions import (
    ConfigurationError,
    NetworkError,
    NotFoundError,
    QueryBudgetExceededError,
)
from hcsclient.common.models import (
    QueryCostResponse,
    Receipt,
    SignedTransaction,
    TopicMessageFrame,
    TransactionResponse,
)

if TYPE_CHECKING:
    from collections.abc import Iterator

    from hcsclient.client.identity import SigningIdentity

HTTP_NOT_FOUND = 404


class MessageStream:
    """Newline-delimited JSON frames read from a streaming response."""

    def __init__(self, response: requests.Response):
        self._response = response

    def __iter__(self) -> Iterator[TopicMessageFrame]:
        for line in self._response.iter_lines():
            if not line or not line.strip():
                continue  # keep-alive
            yield TopicMessageFrame.model_validate_json(line)

    def close(self) -> None:
        self._response.close()


class LedgerClient(Configurable):
    """Configured connection to a topic service network.

    The client is constructed explicitly and passed to each component. The
    operator and payment ceilings may be changed while requests are in
    flight; each request captures the values current when it is frozen.
    """

    def __init__(
        self,
        base_url: str,
        config: Config | None = None,
        node_account_id: EntityId | str | None = None,
        session: requests.Session | None = None,
        **overrides: Any,
    ):
        self.config = config or Config()
        self.base_url = base_url.rstrip("/")
        self.apply_overrides(
            overrides,
            self.config,
            ["request_timeout", "stream_idle_timeout", "max_transaction_fee", "max_query_payment"],
        )
        self.node_account_id = EntityId.parse(
            node_account_id or self.config.NODE_ACCOUNT_ID
        )
        self.session = session or requests.Session()
        self._lock = threading.Lock()
        self._operator: SigningIdentity | None = None

        self.logger = logging.getLogger(__name__)
        setup_logger(self.logger, self.config.LOG_LEVEL)

    @classmethod
    def connect(cls, network_target: str, config: Config | None = None, **overrides: Any) -> LedgerClient:
        """Create a client for a named network or an explicit base URL."""
        config = config or Config()
        return cls(config.resolve_network(network_target), config=config, **overrides)

    @classmethod
    def for_local(cls, config: Config | None = None) -> LedgerClient:
        return cls.connect("local", config)

    # Operator and ceilings

    def set_operator(self, identity: SigningIdentity) -> LedgerClient:
        with self._lock:
            self._operator = identity
        self.logger.info("Operator set to %s", identity.account_id)
        return self

    @property
    def has_operator(self) -> bool:
        return self._operator is not None

    @property
    def operator(self) -> SigningIdentity:
        with self._lock:
            operator = self._operator
        if operator is None:
            msg = "Client operator must be set before dispatching requests"
            raise ConfigurationError(msg)
        return operator

    def set_fee_ceiling(self, tinybars: int) -> LedgerClient:
        if tinybars < 0:
            msg = "Fee ceiling cannot be negative"
            raise ValueError(msg)
        with self._lock:
            self.max_transaction_fee = tinybars
        return self

    def set_query_payment_ceiling(self, tinybars: int) -> LedgerClient:
        if tinybars < 0:
            msg = "Query payment ceiling cannot be negative"
            raise ValueError(msg)
        with self._lock:
            self.max_query_payment = tinybars
        return self

    def estimate_fee(self, transaction_type: str) -> int:
        try:
            return self.config.FEE_SCHEDULE[transaction_type]
        except KeyError as err:
            msg = f"No fee schedule entry for {transaction_type!r}"
            raise ValueError(msg) from err

    # Transport

    def _url(self, path: str) -> str:
        return f"{self.base_url}{self.config.API_PREFIX}{path}"

    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        kwargs.setdefault("timeout", self.request_timeout)
        try:
            response = self.session.request(method, self._url(path), **kwargs)
        except requests.RequestException as err:
            msg = f"{method} {path} failed: {err}"
            raise NetworkError(msg) from err
        if response.status_code == HTTP_NOT_FOUND:
            raise NotFoundError(self._error_detail(response) or f"{path} not found")
        if response.status_code >= 400:  # noqa: PLR2004
            detail = self._error_detail(response)
            msg = f"{method} {path} returned {response.status_code}: {detail}"
            raise NetworkError(msg, response.status_code)
        return response

    @staticmethod
    def _error_detail(response: requests.Response) -> str:
        try:
            return str(response.json().get("detail", ""))
        except ValueError:
            return response.text

    @staticmethod
    def _parse(model: Any, response: requests.Response) -> Any:
        try:
            return model.model_validate(response.json())
        except (ValueError, PydanticValidationError) as err:
            msg = f"Malformed {model.__name__} from network: {err}"
            raise NetworkError(msg, response.status_code) from err

    @requires_operator()
    def dispatch(self, signed: SignedTransaction) -> TransactionResponse:
        """Send a signed transaction; its outcome arrives later as a receipt."""
        response = self._request("POST", "/transactions", json=signed.model_dump())
        handle: TransactionResponse = self._parse(TransactionResponse, response)
        self.logger.debug("Dispatched %s to node %s", handle.transaction_id, handle.node_account_id)
        return handle

    def get_receipt(self, transaction_id: str) -> Receipt | None:
        """Look up a receipt once; None while the network does not know it yet."""
        try:
            response = self._request("GET", f"/transactions/{transaction_id}/receipt")
        except NotFoundError:
            return None
        return self._parse(Receipt, response)

    def query_cost(self, query_name: str, params: dict[str, Any]) -> int:
        response = self._request("POST", f"/queries/{query_name}/cost", json=params)
        cost: QueryCostResponse = self._parse(QueryCostResponse, response)
        return cost.cost

    @requires_operator()
    def execute_query(self, query_name: str, params: dict[str, Any]) -> dict[str, Any]:
        """Run a paid query after checking its cost against the ceiling."""
        operator = self.operator
        ceiling = self.max_query_payment
        cost = self.query_cost(query_name, params)
        if cost > ceiling:
            raise QueryBudgetExceededError(cost, ceiling)

        payment = TransferTransaction()
        if cost:
            payment.add_hbar_transfer(operator.account_id, -cost)
            payment.add_hbar_transfer(self.node_account_id, cost)
        payment.freeze_with(self, operator)
        payment.sign(operator)
        payload = dict(params, payment=payment.to_signed().model_dump())
        response = self._request("POST", f"/queries/{query_name}", json=payload)
        self.logger.debug("Paid %s tinybars for %s query", cost, query_name)
        return response.json()

    def open_message_stream(
        self,
        topic_id: EntityId,
        start_time: Timestamp,
        end_time: Timestamp | None = None,
        limit: int | None = None,
    ) -> MessageStream:
        params: dict[str, Any] = {"start": str(start_time)}
        if end_time is not None:
            params["end"] = str(end_time)
        if limit is not None:
            params["limit"] = limit
        response = self._request(
            "GET",
            f"/topics/{topic_id}/messages/stream",
            params=params,
            stream=True,
            timeout=(self.request_timeout, self.stream_idle_timeout),
        )
        return MessageStream(response)

    def close(self) -> None:
        self.session.close()

    def __enter__(self) -> LedgerClient:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()
