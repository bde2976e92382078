"""
Launchtube relay clients.

Launchtube pays Stellar transaction fees on the caller's behalf and meters
usage with prepaid credit tokens (bearer JWTs). RelayClient speaks the
end-user protocol; RelayAdminClient holds the privileged token used to mint
new credit tokens and is kept in a separate class so the two credentials
never share an object.

Endpoints:
    POST /          submit xdr=<b64> or func=<b64>&auth[]=<b64>..., sim=<bool>
    GET  /info      {"credits": ..., "activated": ...}
    POST /activate  token=<token>
    POST /claim     code=<code>  -> HTML page embedding a fresh token
    GET  /gen       ?ttl=&credits=&count=  (privileged) -> ["token", ...]

Every call is a single blocking request with connect and read deadlines.
Nothing is retried here; retry policy belongs to the caller.
"""

from __future__ import annotations

import logging
import re
from typing import Any
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, Field

from stellar_agent.config import NETWORKS, RelayConfig, check_base_url
from stellar_agent.core.models import CreditAccount, SubmissionResult
from stellar_agent.errors import (
    ClaimTokenExtractionFailedError,
    ConfigurationError,
    CreditsUnparseableError,
    RelayRejectedError,
    RelayResponseError,
    RelayUnreachableError,
    StaleSequenceError,
    SubmissionRequestError,
    TokenActivationError,
)

logger = logging.getLogger("stellar_agent.relay")

CREDITS_HEADER = "X-Credits-Remaining"
DEFAULT_RELAY_URL = NETWORKS["testnet"]["relay_url"]

_FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"
_BAD_SEQ_RE = re.compile(r"tx_?bad_?seq", re.IGNORECASE)
_INTEGER_RE = re.compile(r"^[0-9]+$")

# Claim page contract: a `token` key or attribute, then '=' or ':', then the
# token in quotes, e.g. token="eyJ...", "token": "eyJ...", data-token='eyJ...'.
# Tokens are JWTs, so only base64url characters and dots are accepted.
_CLAIM_TOKEN_RE = re.compile(
    r"""\btoken["']?\s*[:=]\s*["']([A-Za-z0-9_\-.]{16,})["']""",
    re.IGNORECASE,
)


class SubmitRequest(BaseModel):
    """
    Payload for a relay submission.

    Exactly one of `xdr` (a complete transaction envelope) or `func` (a
    Soroban host function, with optional `auth` entries) must be set.
    """
    xdr: str | None = None
    func: str | None = None
    auth: list[str] = Field(default_factory=list)
    sim: bool = True


def encode_submission(request: SubmitRequest) -> list[tuple[str, str]]:
    """
    Shape a SubmitRequest into form fields, enforcing the xdr / func+auth contract.

    Raises:
        SubmissionRequestError: both or neither of xdr and func are given,
                                or auth entries accompany an xdr submission
    """
    if request.xdr and request.func:
        raise SubmissionRequestError("Provide either xdr or func+auth, not both")
    if not request.xdr and not request.func:
        raise SubmissionRequestError("Provide either xdr or func+auth")
    if request.xdr and request.auth:
        raise SubmissionRequestError("auth entries are only valid with func")

    if request.xdr:
        form = [("xdr", request.xdr)]
    else:
        form = [("func", request.func)]
        form.extend(("auth[]", entry) for entry in request.auth)
    form.append(("sim", "true" if request.sim else "false"))
    return form


def parse_credits(value: Any) -> int:
    """
    Parse a relay credits value strictly.

    Accepts a non-negative integer, integral float, or string of digits.
    Anything else raises CreditsUnparseableError; it is never read as zero.
    """
    if isinstance(value, bool) or value is None:
        raise CreditsUnparseableError(value)
    if isinstance(value, int):
        if value < 0:
            raise CreditsUnparseableError(value)
        return value
    if isinstance(value, float):
        if value.is_integer() and value >= 0:
            return int(value)
        raise CreditsUnparseableError(value)
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    raise CreditsUnparseableError(value)


def extract_claim_token(html: str) -> str:
    """
    Pull the token out of a /claim response page.

    Raises:
        ClaimTokenExtractionFailedError: no token marker, or several different tokens
    """
    found = {m.group(1) for m in _CLAIM_TOKEN_RE.finditer(html)}
    if not found:
        raise ClaimTokenExtractionFailedError("Could not extract token from claim response")
    if len(found) > 1:
        raise ClaimTokenExtractionFailedError(
            f"Claim response contains {len(found)} different tokens; refusing to guess"
        )
    return found.pop()


class _RelayTransport:
    """Shared HTTP plumbing: bearer auth, deadlines and transport error mapping."""

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 15.0,
        connect_timeout: float = 5.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        if not token or not token.strip():
            raise ConfigurationError("Launchtube token is required")
        try:
            self.base_url = check_base_url(base_url)
        except ValueError as e:
            raise ConfigurationError(f"Invalid Launchtube base URL: {e}") from None
        self._token = token.strip()
        self._client = http_client or httpx.Client(
            timeout=httpx.Timeout(timeout, connect=connect_timeout)
        )

    def _send(
        self,
        method: str,
        path: str,
        token: str | None = None,
        form: list[tuple[str, str]] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self.base_url}{path}"
        headers = {"Authorization": f"Bearer {token or self._token}"}
        content = None
        if form is not None:
            headers["Content-Type"] = _FORM_CONTENT_TYPE
            content = urlencode(form)

        logger.debug(f"Launchtube request: {method} {url}")
        try:
            return self._client.request(method, url, headers=headers, content=content, params=params)
        except httpx.TimeoutException as e:
            raise RelayUnreachableError(f"Launchtube request to {url} timed out: {e}") from e
        except httpx.TransportError as e:
            raise RelayUnreachableError(f"Launchtube unreachable at {url}: {e}") from e

    def close(self) -> None:
        """Close the underlying HTTP client."""
        self._client.close()

    def __enter__(self) -> Any:
        return self

    def __exit__(self, *_: Any) -> None:
        self.close()


class RelayClient(_RelayTransport):
    """
    Client for the Launchtube end-user protocol.

    Usage:
        relay = RelayClient(token="eyJ...")  # testnet relay
        relay = RelayClient.from_config(RelayConfig.from_env())

        result = relay.submit(SubmitRequest(xdr=compiled.xdr))
        account = relay.check_credits()

    Every method accepts an optional `token` to authenticate that one call
    with a different credit token than the one the client was built with.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_RELAY_URL,
        token: str = "",
        timeout: float = 15.0,
        connect_timeout: float = 5.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url, token, timeout, connect_timeout, http_client)

    @classmethod
    def from_config(cls, config: RelayConfig, http_client: httpx.Client | None = None) -> RelayClient:
        return cls(
            base_url=config.base_url,
            token=config.token,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            http_client=http_client,
        )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit(self, request: SubmitRequest, token: str | None = None) -> SubmissionResult:
        """
        Submit a transaction envelope or host function to the relay.

        Returns:
            SubmissionResult: status "success" with the transaction hash and the
            credits reported in the X-Credits-Remaining header

        Raises:
            SubmissionRequestError: request shape is invalid (nothing is sent)
            StaleSequenceError: ledger rejected the sequence number
            RelayRejectedError: any other non-2xx answer, with the body preserved
            RelayResponseError: 2xx answer without a transaction hash
            RelayUnreachableError: connect/read deadline expired
        """
        form = encode_submission(request)
        mode = "xdr" if request.xdr else f"func+{len(request.auth)} auth"
        logger.info(f"Submitting transaction to Launchtube ({mode}, sim={request.sim})")

        response = self._send("POST", "/", token, form=form)
        if not response.is_success:
            body = response.text
            logger.warning(f"Launchtube rejected submission ({response.status_code}): {body[:500]}")
            if _BAD_SEQ_RE.search(body):
                raise StaleSequenceError(response.status_code, body)
            raise RelayRejectedError(response.status_code, body)

        try:
            payload = response.json()
        except ValueError:
            raise RelayResponseError(
                f"Launchtube returned a non-JSON success body: {response.text[:200]}"
            ) from None
        if not isinstance(payload, dict):
            raise RelayResponseError(f"Launchtube returned an unexpected success body: {payload!r}")

        tx_hash = payload.get("tx") or payload.get("hash")
        if not isinstance(tx_hash, str) or not tx_hash:
            raise RelayResponseError(f"Launchtube success response carries no transaction hash: {payload}")

        raw_credits = response.headers.get(CREDITS_HEADER)
        credits_remaining = None
        if raw_credits is not None:
            try:
                credits_remaining = parse_credits(raw_credits)
            except CreditsUnparseableError:
                logger.warning(f"Ignoring unparseable {CREDITS_HEADER} header: {raw_credits!r}")

        logger.info(f"Transaction submitted: {tx_hash} (credits remaining: {raw_credits})")
        return SubmissionResult(
            status="success",
            tx_hash=tx_hash,
            credits_remaining=credits_remaining,
            raw_details={**payload, "credits_header": raw_credits},
        )

    # ------------------------------------------------------------------
    # Credits and token lifecycle
    # ------------------------------------------------------------------

    def check_credits(self, token: str | None = None) -> CreditAccount:
        """
        Read the remaining credits of a token from /info.

        Raises:
            CreditsUnparseableError: body is not JSON or `credits` is not an integer
            RelayRejectedError: non-2xx answer
        """
        response = self._send("GET", "/info", token)
        if not response.is_success:
            raise RelayRejectedError(response.status_code, response.text)
        try:
            payload = response.json()
        except ValueError:
            raise CreditsUnparseableError(response.text) from None
        if not isinstance(payload, dict):
            raise CreditsUnparseableError(payload)

        credits = parse_credits(payload.get("credits"))
        account = CreditAccount(
            token_id=token or self._token,
            credits_remaining=credits,
            activated=payload.get("activated") is True,
        )
        logger.info(f"Launchtube credits: {credits} stroops (activated={account.activated})")
        return account

    def activate(self, token: str) -> None:
        """
        Activate a credit token. A refusal is terminal for that token.

        Raises:
            TokenActivationError: relay refused the activation
        """
        if not token or not token.strip():
            raise SubmissionRequestError("A token is required for activation")
        response = self._send("POST", "/activate", form=[("token", token.strip())])
        if not response.is_success:
            logger.warning(f"Token activation refused ({response.status_code})")
            raise TokenActivationError(response.status_code, response.text)
        logger.info("Token activated successfully")

    def claim(self, code: str) -> str:
        """
        Exchange a claim code for a fresh credit token.

        Returns:
            str: the token embedded in the claim page

        Raises:
            ClaimTokenExtractionFailedError: the page carries no unambiguous token
            RelayRejectedError: non-2xx answer
        """
        if not code or not code.strip():
            raise SubmissionRequestError("A claim code is required")
        response = self._send("POST", "/claim", form=[("code", code.strip())])
        if not response.is_success:
            raise RelayRejectedError(response.status_code, response.text)
        token = extract_claim_token(response.text)
        logger.info("Token claimed successfully")
        return token


class RelayAdminClient(_RelayTransport):
    """
    Privileged Launchtube client that mints credit tokens.

    The admin token must stay inside the operator's trust boundary: do not
    hand this client (or its token) to agents that hold end-user tokens.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_RELAY_URL,
        admin_token: str = "",
        timeout: float = 15.0,
        connect_timeout: float = 5.0,
        http_client: httpx.Client | None = None,
    ) -> None:
        super().__init__(base_url, admin_token, timeout, connect_timeout, http_client)

    @classmethod
    def from_config(
        cls, config: RelayConfig, http_client: httpx.Client | None = None
    ) -> RelayAdminClient:
        if not config.admin_token:
            raise ConfigurationError("LAUNCHTUBE_ADMIN_TOKEN is required for token generation")
        return cls(
            base_url=config.base_url,
            admin_token=config.admin_token,
            timeout=config.timeout,
            connect_timeout=config.connect_timeout,
            http_client=http_client,
        )

    def generate_tokens(self, ttl: int, credits: int, count: int) -> list[str]:
        """
        Mint new credit tokens.

        Args:
            ttl: token lifetime in seconds
            credits: credits per token, in stroops
            count: number of tokens

        Returns:
            list[str]: the new tokens
        """
        for name, value in (("ttl", ttl), ("credits", credits), ("count", count)):
            if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
                raise SubmissionRequestError(f"{name} must be a positive integer, got {value!r}")

        logger.info(f"Generating {count} Launchtube tokens ({credits} stroops, ttl {ttl}s)")
        response = self._send("GET", "/gen", params={"ttl": ttl, "credits": credits, "count": count})
        if not response.is_success:
            raise RelayRejectedError(response.status_code, response.text)
        try:
            tokens = response.json()
        except ValueError:
            raise RelayResponseError(f"/gen returned non-JSON body: {response.text[:200]}") from None
        if not isinstance(tokens, list) or not all(isinstance(t, str) and t for t in tokens):
            raise RelayResponseError(f"/gen returned an unexpected body: {tokens!r}")
        logger.info(f"Generated {len(tokens)} tokens")
        return tokens
