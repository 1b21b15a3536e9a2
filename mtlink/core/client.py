import logging
from datetime import date, datetime
from typing import Any, Dict, Optional, Type, TypeVar, Union
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from ..config import MoneytreeConfig
from .data_models import (
    AccountBalances,
    AccountDueBalances,
    AccountGroups,
    CorporateAccounts,
    ErrorEnvelope,
    Institutions,
    InvestmentAccounts,
    InvestmentPositions,
    PersonalAccounts,
    PointAccounts,
    PointExpirations,
    Profile,
    TermDeposits,
    TokenResponse,
    Transactions,
)
from .errors import APIError, ConfigurationError, DecodeError, TransportError
from .sanitizer import sanitize_url

logger = logging.getLogger(__name__)
DEFAULT_TIMEOUT = httpx.Timeout(30.0, connect=5.0)
DEFAULT_LIMITS = httpx.Limits(max_connections=100, max_keepalive_connections=100, keepalive_expiry=90.0)

OAUTH_TOKEN_PATH = "oauth/token"
OAUTH_REVOKE_PATH = "oauth/revoke"
SORT_ORDERS = ("asc", "desc")
DATE_FORMAT = "%Y-%m-%d"

ModelT = TypeVar("ModelT", bound=BaseModel)
DateParam = Union[date, str]
AccountId = Union[int, str]


def _require(value: Any, name: str) -> None:
    if value is None or value == "":
        raise ValueError(f"{name} is required")


def _format_date(value: DateParam, name: str) -> str:
    if isinstance(value, date):
        return value.strftime(DATE_FORMAT)
    try:
        datetime.strptime(value, DATE_FORMAT)
    except (TypeError, ValueError):
        raise ValueError(f"{name} must be in format YYYY-MM-DD (e.g., 2020-11-08), got: {value}") from None
    return value


def _segment(value: AccountId) -> str:
    return quote(str(value), safe="")


def _list_params(
    page: Optional[int] = None,
    per_page: Optional[int] = None,
    sort_key: Optional[str] = None,
    sort_by: Optional[str] = None,
    since: Optional[DateParam] = None,
    start_date: Optional[DateParam] = None,
    end_date: Optional[DateParam] = None,
) -> Dict[str, str]:
    """Query string shared by the list endpoints. Unset options are omitted."""
    params: Dict[str, str] = {}
    if page is not None:
        params["page"] = str(page)
    if per_page is not None:
        params["per_page"] = str(per_page)
    if sort_key:
        params["sort_key"] = sort_key
    if sort_by:
        if sort_by not in SORT_ORDERS:
            raise ValueError(f"sort_by must be 'asc' or 'desc', got: {sort_by}")
        params["sort_by"] = sort_by
    if since is not None:
        params["since"] = _format_date(since, "since")
    if (start_date is None) != (end_date is None):
        raise ValueError("start_date and end_date must be specified together")
    if start_date is not None and end_date is not None:
        params["start_date"] = _format_date(start_date, "start_date")
        params["end_date"] = _format_date(end_date, "end_date")
    return params


class MoneytreeClient:
    """
    Async binding for the Moneytree LINK API.

    Every method issues exactly one HTTP request. Access tokens are passed per
    call and never stored, so one client can serve many guests concurrently.
    Cancel the awaiting task to abort an in-flight request.
    """

    def __init__(
        self,
        config: Optional[MoneytreeConfig],
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if config is None:
            raise ConfigurationError("config cannot be None")
        if not config.base_url:
            raise ConfigurationError("base_url is required")
        if not config.client_id:
            raise ConfigurationError("client_id is required")
        if not config.client_secret:
            raise ConfigurationError("client_secret is required")

        self.config = config
        self.transport = transport or httpx.AsyncHTTPTransport(limits=DEFAULT_LIMITS)
        self._client = httpx.AsyncClient(
            base_url=config.base_url,
            transport=self.transport,
            timeout=DEFAULT_TIMEOUT,
            headers={"Accept": "application/json"},
        )

    async def __aenter__(self) -> "MoneytreeClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Dispose the underlying HTTP client and its transport."""
        await self._client.aclose()

    # --- request plumbing ----------------------------------------------------

    async def _request(
        self,
        method: str,
        path: str,
        *,
        access_token: Optional[str] = None,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
        model: Optional[Type[ModelT]] = None,
    ) -> Optional[ModelT]:
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else None
        request = self._client.build_request(method, path, params=params or None, data=data, headers=headers)
        safe_url = str(sanitize_url(request.url))
        logger.debug("%s %s", method, safe_url)

        try:
            response = await self._client.send(request)
        except httpx.RequestError as exc:
            logger.error("Request %s %s failed: %s", method, safe_url, exc)
            raise TransportError(f"{method} {safe_url} failed: {exc}", url=safe_url) from exc

        if not response.is_success:
            logger.warning("Moneytree returned %s for %s %s", response.status_code, method, safe_url)
            raise self._api_error(response, safe_url)

        if model is None:
            return None
        return self._decode(response, model, safe_url)

    @staticmethod
    def _api_error(response: httpx.Response, safe_url: str) -> APIError:
        raw = response.text
        if not raw.strip():
            return APIError(response.status_code, raw_message=raw, url=safe_url)
        try:
            envelope = ErrorEnvelope.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            return APIError(
                response.status_code,
                error_description=f"unable to decode response from moneytree: {exc}",
                raw_message=raw,
                url=safe_url,
            )
        return APIError(
            response.status_code,
            error_type=envelope.error,
            error_description=envelope.error_description,
            raw_message=raw,
            url=safe_url,
        )

    @staticmethod
    def _decode(response: httpx.Response, model: Type[ModelT], safe_url: str) -> ModelT:
        raw = response.text
        try:
            # An empty body decodes like an empty object.
            payload = response.json() if raw.strip() else {}
        except ValueError as exc:
            logger.error("Malformed JSON from %s: %s", safe_url, exc)
            raise DecodeError(f"invalid JSON from {safe_url}: {exc}", url=safe_url, raw_message=raw) from exc
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.error("Unexpected %s payload from %s: %s", model.__name__, safe_url, exc)
            raise DecodeError(
                f"unexpected {model.__name__} payload from {safe_url}: {exc.error_count()} validation error(s)",
                url=safe_url,
                raw_message=raw,
            ) from exc

    # --- OAuth ---------------------------------------------------------------

    async def get_access_token(self, code: str, redirect_uri: str) -> TokenResponse:
        """Exchange an authorization code for access and refresh tokens."""
        _require(code, "code")
        _require(redirect_uri, "redirect_uri")
        token = await self._request(
            "POST",
            OAUTH_TOKEN_PATH,
            data={
                "grant_type": "authorization_code",
                "code": code,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
                "redirect_uri": redirect_uri,
            },
            model=TokenResponse,
        )
        logger.info("Exchanged authorization code for access token (scope=%s)", token.scope)
        return token

    async def refresh_access_token(self, refresh_token: str) -> TokenResponse:
        """Trade a refresh token for a new access token. Scheduling is up to the caller."""
        _require(refresh_token, "refresh_token")
        token = await self._request(
            "POST",
            OAUTH_TOKEN_PATH,
            data={
                "grant_type": "refresh_token",
                "refresh_token": refresh_token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
            model=TokenResponse,
        )
        logger.info("Refreshed access token (expires_in=%s)", token.expires_in)
        return token

    async def revoke_token(self, token: str) -> None:
        """Revoke an access or refresh token."""
        _require(token, "token")
        await self._request(
            "POST",
            OAUTH_REVOKE_PATH,
            data={
                "token": token,
                "client_id": self.config.client_id,
                "client_secret": self.config.client_secret,
            },
        )
        logger.info("Revoked OAuth token")

    # --- Profile & account groups -------------------------------------------

    async def get_profile(self, access_token: str) -> Profile:
        """Requires the guest_read scope."""
        _require(access_token, "access token")
        return await self._request("GET", "link/profile.json", access_token=access_token, model=Profile)

    async def revoke_profile(self, access_token: str) -> None:
        """Disconnect the guest from this application."""
        _require(access_token, "access token")
        await self._request("POST", "link/profile/revoke.json", access_token=access_token)

    async def refresh_profile(self, access_token: str) -> None:
        """
        Ask Moneytree to re-aggregate every account group of the guest.

        Limited upstream to four requests per guest per day (reset at 00:00 JST).
        A 202 does not guarantee every institution will be refreshed.
        """
        _require(access_token, "access token")
        await self._request("POST", "link/profile/refresh.json", access_token=access_token)

    async def get_account_groups(self, access_token: str) -> AccountGroups:
        """Aggregation status per registered financial service."""
        _require(access_token, "access token")
        return await self._request(
            "GET", "link/profile/account_groups.json", access_token=access_token, model=AccountGroups
        )

    async def refresh_account_group(self, access_token: str, account_group: int) -> None:
        """Ask Moneytree to re-aggregate a single account group."""
        _require(access_token, "access token")
        _require(account_group, "account group")
        await self._request(
            "POST",
            f"link/account_groups/{_segment(account_group)}/refresh.json",
            access_token=access_token,
        )

    # --- Personal accounts ---------------------------------------------------

    async def get_personal_accounts(
        self,
        access_token: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> PersonalAccounts:
        """List individual accounts. Requires accounts_read."""
        _require(access_token, "access token")
        return await self._request(
            "GET",
            "link/accounts.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page),
            model=PersonalAccounts,
        )

    async def get_personal_account_balances(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        since: Optional[DateParam] = None,
    ) -> AccountBalances:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/accounts/{_segment(account_key)}/balances.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page, since=since),
            model=AccountBalances,
        )

    async def get_personal_account_transactions(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_key: Optional[str] = None,
        sort_by: Optional[str] = None,
        since: Optional[DateParam] = None,
        start_date: Optional[DateParam] = None,
        end_date: Optional[DateParam] = None,
    ) -> Transactions:
        """
        One page of transactions for an individual account.

        ``start_date`` and ``end_date`` filter by transaction date and must be
        passed together; ``since`` filters by last update.
        """
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/accounts/{_segment(account_key)}/transactions.json",
            access_token=access_token,
            params=_list_params(
                page=page,
                per_page=per_page,
                sort_key=sort_key,
                sort_by=sort_by,
                since=since,
                start_date=start_date,
                end_date=end_date,
            ),
            model=Transactions,
        )

    async def get_term_deposits(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> TermDeposits:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/accounts/{_segment(account_key)}/term_deposits.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page),
            model=TermDeposits,
        )

    async def get_account_balance_details(self, access_token: str, account_key: str) -> AccountBalances:
        """Balance breakdown (confirmed, undetermined, long-term debt) for an account."""
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/accounts/{_segment(account_key)}/balances/details.json",
            access_token=access_token,
            model=AccountBalances,
        )

    async def get_account_due_balances(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        since: Optional[DateParam] = None,
        start_date: Optional[DateParam] = None,
        end_date: Optional[DateParam] = None,
    ) -> AccountDueBalances:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/accounts/{_segment(account_key)}/due_balances.json",
            access_token=access_token,
            params=_list_params(page=page, since=since, start_date=start_date, end_date=end_date),
            model=AccountDueBalances,
        )

    # --- Corporate accounts --------------------------------------------------

    async def get_corporate_accounts(self, access_token: str, page: Optional[int] = None) -> CorporateAccounts:
        """List corporate accounts (point accounts excluded). Requires accounts_read."""
        _require(access_token, "access token")
        return await self._request(
            "GET",
            "link/corporate/accounts.json",
            access_token=access_token,
            params=_list_params(page=page),
            model=CorporateAccounts,
        )

    async def get_corporate_account_balances(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_key: Optional[str] = None,
        sort_by: Optional[str] = None,
        since: Optional[DateParam] = None,
    ) -> AccountBalances:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/corporate/accounts/{_segment(account_key)}/balances.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page, sort_key=sort_key, sort_by=sort_by, since=since),
            model=AccountBalances,
        )

    async def get_corporate_account_transactions(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_key: Optional[str] = None,
        sort_by: Optional[str] = None,
        since: Optional[DateParam] = None,
        start_date: Optional[DateParam] = None,
        end_date: Optional[DateParam] = None,
    ) -> Transactions:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/corporate/accounts/{_segment(account_key)}/transactions.json",
            access_token=access_token,
            params=_list_params(
                page=page,
                per_page=per_page,
                sort_key=sort_key,
                sort_by=sort_by,
                since=since,
                start_date=start_date,
                end_date=end_date,
            ),
            model=Transactions,
        )

    # --- Point accounts ------------------------------------------------------

    async def get_point_accounts(
        self,
        access_token: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
    ) -> PointAccounts:
        """List point accounts. Requires points_read."""
        _require(access_token, "access token")
        return await self._request(
            "GET",
            "link/points/accounts.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page),
            model=PointAccounts,
        )

    async def get_point_account_transactions(
        self,
        access_token: str,
        account_id: AccountId,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_key: Optional[str] = None,
        sort_by: Optional[str] = None,
        since: Optional[DateParam] = None,
    ) -> Transactions:
        _require(access_token, "access token")
        _require(account_id, "account ID")
        return await self._request(
            "GET",
            f"link/points/accounts/{_segment(account_id)}/transactions.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page, sort_key=sort_key, sort_by=sort_by, since=since),
            model=Transactions,
        )

    async def get_point_expirations(
        self,
        access_token: str,
        account_id: AccountId,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        since: Optional[DateParam] = None,
    ) -> PointExpirations:
        """Upcoming point expirations for a point account."""
        _require(access_token, "access token")
        _require(account_id, "account ID")
        return await self._request(
            "GET",
            f"link/points/accounts/{_segment(account_id)}/expirations.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page, since=since),
            model=PointExpirations,
        )

    # --- Investment accounts -------------------------------------------------

    async def get_investment_accounts(self, access_token: str, page: Optional[int] = None) -> InvestmentAccounts:
        """Requires investment_accounts_read."""
        _require(access_token, "access token")
        return await self._request(
            "GET",
            "link/investments/accounts.json",
            access_token=access_token,
            params=_list_params(page=page),
            model=InvestmentAccounts,
        )

    async def get_investment_positions(
        self, access_token: str, account_key: str, page: Optional[int] = None
    ) -> InvestmentPositions:
        """Latest confirmed holdings of an investment account, not a history."""
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/investments/accounts/{_segment(account_key)}/positions.json",
            access_token=access_token,
            params=_list_params(page=page),
            model=InvestmentPositions,
        )

    async def get_investment_account_transactions(
        self,
        access_token: str,
        account_key: str,
        page: Optional[int] = None,
        per_page: Optional[int] = None,
        sort_key: Optional[str] = None,
        sort_by: Optional[str] = None,
        since: Optional[DateParam] = None,
    ) -> Transactions:
        _require(access_token, "access token")
        _require(account_key, "account key")
        return await self._request(
            "GET",
            f"link/investments/accounts/{_segment(account_key)}/transactions.json",
            access_token=access_token,
            params=_list_params(page=page, per_page=per_page, sort_key=sort_key, sort_by=sort_by, since=since),
            model=Transactions,
        )

    # --- Institutions --------------------------------------------------------

    async def get_institutions(
        self,
        access_token: Optional[str] = None,
        since: Optional[DateParam] = None,
    ) -> Institutions:
        """
        List every financial institution known to Moneytree, including inactive ones.

        This is a system-level call: pass an application token rather than a
        guest token, if any. Use ``since`` to fetch only institutions updated
        after a date.
        """
        return await self._request(
            "GET",
            "link/institutions.json",
            access_token=access_token,
            params=_list_params(since=since),
            model=Institutions,
        )
