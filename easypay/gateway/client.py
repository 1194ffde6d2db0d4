"""Easypay Gateway Client

Async wire client for the Easypay reference API (api_easypay_<code>.php).
Requests are query strings (GET) or form bodies (POST, split payments
only); responses are XML documents carrying an ep_status/ep_message pair.
"""

import json
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from http.cookiejar import CookieJar, DefaultCookiePolicy
from typing import Any
from xml.etree import ElementTree

import httpx

from easypay.errors import (
    ERROR_GATEWAY_UNKNOWN,
    ERROR_MISSING_AUTH_KEY,
    ERROR_MISSING_STATUS,
    GatewayError,
    ValidationError,
)
from easypay.gateway.codec import decode_collection, decode_element, encode_value
from easypay.logging import get_logger, sanitize_gateway_message
from easypay.payments.constants import (
    AUTH_PARAM,
    MESSAGE_FIELD,
    PRODUCTION_URL,
    SANDBOX_URL,
    STATUS_FIELD,
    STATUS_OK,
    Operation,
)
from easypay.services.money import round_money

logger = get_logger(__name__)


@dataclass
class SplitEntry:
    """One recipient of a fraction of an order payment."""
    client_id: int
    username: str | None
    entity_id: int
    amount: Decimal

    def __post_init__(self):
        self.amount = round_money(self.amount)


@dataclass
class GatewayRequest:
    """Reference request for one order payment."""
    client_id: int
    username: str | None
    entity_id: int
    order_code: str
    value: Decimal
    country: str | None = None
    language: str | None = None
    customer_name: str | None = None
    email: str | None = None
    expiration: date | datetime | None = None
    splits: list[SplitEntry] = field(default_factory=list)

    @property
    def has_splits(self) -> bool:
        return bool(self.splits)

    def to_params(self) -> dict[str, Any]:
        """Ordered request fields; split requests carry the split_json payload."""
        params: dict[str, Any] = {
            "ep_cin": self.client_id,
            "ep_user": self.username,
            "ep_entity": self.entity_id,
            "ep_country": self.country,
            "t_value": round_money(self.value),
            "t_key": self.order_code,
            "ep_ref_type": "auto",
            "ep_language": self.language,
            "o_name": self.customer_name,
            "o_email": self.email,
            "o_max_date": self.expiration,
        }
        if self.splits:
            params["ret_type"] = "xml"
            params["ep_split"] = "normal"
            params["split_json"] = self.split_json()
        return params

    def split_json(self) -> str:
        """Encode split entries as {"split_payment": {"0": {...}, "1": {...}}}."""
        entries = {
            str(n): {
                "ep_user": split.username or "",
                "ep_partner": self.username or "",
                "ep_cin": str(split.client_id),
                "ep_entity": str(split.entity_id),
                "ep_country": self.country or "",
                "t_value": encode_value(split.amount),
                "t_value_type": "fixed",
            }
            for n, split in enumerate(self.splits)
        }
        return json.dumps({"split_payment": entries}, separators=(",", ":"), ensure_ascii=False)


def _has_value(value: Any) -> bool:
    return value is not None and value != ""


class GatewayClient:
    """Authenticated client for one Easypay account (one per store)."""

    def __init__(
        self,
        authentication_key: str | None,
        sandbox: bool = False,
        http_client: httpx.AsyncClient | None = None,
    ):
        if not authentication_key:
            raise ValidationError(ERROR_MISSING_AUTH_KEY)
        self._authentication_key = authentication_key
        self.sandbox = sandbox
        self.base_url = SANDBOX_URL if sandbox else PRODUCTION_URL

        # HTTP client (lazy init)
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Lazy creation of the httpx client: no redirects, no cookie state."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=httpx.Timeout(10.0, connect=5.0, read=10.0, write=10.0),
                limits=httpx.Limits(max_connections=10, max_keepalive_connections=5),
                follow_redirects=False,
                cookies=CookieJar(policy=DefaultCookiePolicy(allowed_domains=[])),
            )
        return self._http_client

    def _url(self, operation: Operation) -> str:
        return f"{self.base_url}{operation.path}"

    # ==================== REQUEST HANDLING ====================

    def _query_params(self, params: dict[str, Any] | None) -> list[tuple[str, str]]:
        """Query string fields; the authentication key goes last."""
        encoded = [
            (name, encode_value(value))
            for name, value in (params or {}).items()
            if _has_value(value)
        ]
        encoded.append((AUTH_PARAM, self._authentication_key))
        return encoded

    def _form_fields(self, params: dict[str, Any] | None) -> dict[str, str]:
        """Form body fields; the authentication key goes first."""
        encoded = {AUTH_PARAM: self._authentication_key}
        for name, value in (params or {}).items():
            if _has_value(value):
                encoded[name] = encode_value(value)
        return encoded

    async def _get(self, operation: Operation, params: dict[str, Any] | None) -> ElementTree.Element:
        client = await self._get_http_client()
        try:
            response = await client.get(self._url(operation), params=self._query_params(params))
        except httpx.HTTPError as e:
            logger.exception("Easypay %s request failed", operation.value)
            raise GatewayError(f"Failed to connect to Easypay API ({operation.value}): {e!s}") from e
        return self._handle_response(operation, response)

    async def _post(self, operation: Operation, params: dict[str, Any] | None) -> ElementTree.Element:
        client = await self._get_http_client()
        try:
            response = await client.post(self._url(operation), data=self._form_fields(params))
        except httpx.HTTPError as e:
            logger.exception("Easypay %s request failed", operation.value)
            raise GatewayError(f"Failed to connect to Easypay API ({operation.value}): {e!s}") from e
        return self._handle_response(operation, response)

    @staticmethod
    def _handle_response(operation: Operation, response: httpx.Response) -> ElementTree.Element:
        """Apply the ep_status/ep_message contract to a response document."""
        if response.is_error:
            logger.error("Easypay %s returned HTTP %s", operation.value, response.status_code)
            raise GatewayError(f"Easypay API error ({operation.value}): HTTP {response.status_code}")

        try:
            root = ElementTree.fromstring(response.content)
        except ElementTree.ParseError as e:
            logger.error("Easypay %s returned a malformed document: %s", operation.value, e)
            raise GatewayError(f"Malformed Easypay response ({operation.value}): {e!s}") from e

        status = root.find(STATUS_FIELD)
        if status is None:
            raise GatewayError(ERROR_MISSING_STATUS)

        if not (status.text or "").strip().lower().startswith(STATUS_OK):
            message = root.findtext(MESSAGE_FIELD)
            logger.error(
                "Easypay service error on %s: %s",
                operation.value,
                sanitize_gateway_message(message),
            )
            raise GatewayError(message if message else ERROR_GATEWAY_UNKNOWN)

        return root

    # ==================== MAIN API ====================

    async def query(self, operation: Operation, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Read-style call (GET); returns the decoded response fields."""
        return decode_element(await self._get(operation, params))

    async def query_collection(
        self, operation: Operation, params: dict[str, Any] | None = None
    ) -> list[dict[str, Any]]:
        """Read-style call returning the decoded records of a collection response."""
        return decode_collection(await self._get(operation, params))

    async def submit(self, operation: Operation, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Write-style call (POST, form-encoded); returns the decoded response fields."""
        return decode_element(await self._post(operation, params))

    async def request_reference(self, request: GatewayRequest) -> dict[str, Any]:
        """
        Request a payment reference.

        Split requests go through the POST split endpoint (01SP),
        everything else through the plain GET endpoint (01BG).
        """
        params = request.to_params()
        if request.has_splits:
            return await self.submit(Operation.REQUEST_SPLIT_REFERENCE, params)
        return await self.query(Operation.REQUEST_REFERENCE, params)

    async def fetch_payment_detail(
        self, client_id: int, username: str, transaction_id: str, type: str | None = None
    ) -> dict[str, Any]:
        """Payment detail for a notified transaction (03AG)."""
        params = {"ep_cin": client_id, "ep_user": username, "ep_doc": transaction_id, "ep_type": type}
        return await self.query(Operation.PAYMENT_DETAIL, params)

    async def fetch_payments(
        self,
        client_id: int,
        username: str,
        entity_id: int,
        start: date | datetime,
        end: date | datetime,
    ) -> list[dict[str, Any]]:
        """Payments registered between two dates (040BG1, list type "date")."""
        params = {
            "ep_cin": client_id,
            "ep_user": username,
            "ep_entity": entity_id,
            "o_list_type": "date",
            "o_ini": start,
            "o_last": end,
        }
        return await self.query_collection(Operation.LIST_PAYMENTS, params)

    async def fetch_failed_payments(self, client_id: int, username: str, entity_id: int) -> list[dict[str, Any]]:
        """Payments whose notification failed (040BG1, list type "fail")."""
        params = {"ep_cin": client_id, "ep_user": username, "ep_entity": entity_id, "o_list_type": "fail"}
        return await self.query_collection(Operation.LIST_PAYMENTS, params)

    async def aclose(self) -> None:
        """Close http client if created."""
        if self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None
