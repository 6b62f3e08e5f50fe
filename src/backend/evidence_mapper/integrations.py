"""Evidence from external systems: remediation tickets (Jira) and MFA posture (GitHub)."""
import logging
from typing import Optional

import requests
from pydantic import BaseModel
from requests.auth import HTTPBasicAuth

from .control_sync import ControlStatusSynchronizer
from .errors import ConfigurationError, IntegrationServiceError
from .evidence import RecordedEvidence, record_evidence
from .records import Control
from .result import Err, Ok, Result
from .store import ComplianceStore

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


class Ticket(BaseModel):
    key: str
    url: str


class MfaStatus(BaseModel):
    target: str
    account_type: str  # "Organization" | "User"
    mfa_enabled: bool


# ---------- Jira ----------
class JiraClient:
    def __init__(self, domain: str, email: str, api_token: str, project_key: str, timeout: float = 30):
        self.domain = domain
        self.email = email
        self.api_token = api_token
        self.project_key = project_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings) -> "JiraClient":
        values = (settings.jira_domain, settings.jira_email, settings.jira_api_token, settings.jira_project_key)
        if not all(values):
            raise ConfigurationError("Jira integration not connected (JIRA_DOMAIN/EMAIL/API_TOKEN/PROJECT_KEY).")
        return cls(*values, timeout=settings.integration_timeout)

    def create_issue(self, title: str, description: Optional[str]) -> Result[Ticket]:
        payload = {
            "fields": {
                "project": {"key": self.project_key},
                "summary": f"Compliance Failure: {title}",
                "description": {
                    "type": "doc",
                    "version": 1,
                    "content": [{
                        "type": "paragraph",
                        "content": [{"type": "text", "text": description or "No description."}],
                    }],
                },
                "issuetype": {"name": "Task"},
            }
        }
        logger.info("Creating Jira ticket in %s (project %s)", self.domain, self.project_key)
        try:
            r = requests.post(
                f"https://{self.domain}/rest/api/3/issue",
                json=payload,
                auth=HTTPBasicAuth(self.email, self.api_token),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("Jira request failed: %s", e)
            return Err(IntegrationServiceError(f"Jira request failed: {e}"))
        if not r.ok:
            detail = data.get("errors") or data.get("errorMessages") or data
            logger.error("Jira API error %s: %s", r.status_code, detail)
            return Err(IntegrationServiceError(f"Jira API error {r.status_code}: {detail}"))
        key = data["key"]
        return Ok(Ticket(key=key, url=f"https://{self.domain}/browse/{key}"))


def record_remediation_ticket(
    store: ComplianceStore,
    synchronizer: ControlStatusSynchronizer,
    jira: JiraClient,
    control_id: str,
    title: str,
    description: Optional[str] = None,
) -> tuple[Ticket, RecordedEvidence]:
    store.require(Control, control_id)
    ticket = jira.create_issue(title, description).unwrap()
    recorded = record_evidence(
        store, synchronizer, control_id,
        name=f"Remediation Ticket: {ticket.key}",
        source_type="Integration",
        status="Pending",  # open ticket
        url=ticket.url,
    )
    return ticket, recorded


# ---------- GitHub ----------
class GitHubClient:
    def __init__(self, token: str, timeout: float = 30, api_url: str = GITHUB_API):
        self.token = token
        self.timeout = timeout
        self.api_url = api_url.rstrip("/")

    @classmethod
    def from_settings(cls, settings) -> "GitHubClient":
        if not settings.github_token:
            raise ConfigurationError("GitHub integration not connected (GITHUB_TOKEN).")
        return cls(settings.github_token, timeout=settings.integration_timeout)

    def _get(self, path: str) -> requests.Response:
        return requests.get(
            f"{self.api_url}{path}",
            headers={"Authorization": f"Bearer {self.token}", "Accept": "application/vnd.github.v3+json"},
            timeout=self.timeout,
        )

    def fetch_mfa_status(self, target: str) -> Result[MfaStatus]:
        """Organization scan first; a 404 falls back to a user account."""
        try:
            r = self._get(f"/orgs/{target}")
            account_type = "Organization"
            if r.status_code == 404:
                logger.info("Org %s not found, trying user scan", target)
                r = self._get(f"/users/{target}")
                account_type = "User"
            r.raise_for_status()
            data = r.json()
        except (requests.RequestException, ValueError) as e:
            logger.error("GitHub scan of %s failed: %s", target, e)
            return Err(IntegrationServiceError(f"GitHub scan failed for '{target}': {e}"))

        if account_type == "Organization":
            enabled = data.get("two_factor_requirement_enabled") is True
        else:
            # only visible for the authenticated user; absent means not enabled
            enabled = data.get("two_factor_authentication") is True
        return Ok(MfaStatus(target=target, account_type=account_type, mfa_enabled=enabled))


def mfa_settings_url(status: MfaStatus) -> str:
    if status.account_type == "Organization":
        return f"https://github.com/orgs/{status.target}/settings/security"
    return f"https://github.com/{status.target}"


def record_mfa_scan(
    store: ComplianceStore,
    synchronizer: ControlStatusSynchronizer,
    github: GitHubClient,
    control_id: str,
    target: str,
) -> tuple[MfaStatus, RecordedEvidence]:
    if not target:
        raise ConfigurationError("No GitHub organization or user configured (GITHUB_TARGET).")
    store.require(Control, control_id)
    status = github.fetch_mfa_status(target).unwrap()
    recorded = record_evidence(
        store, synchronizer, control_id,
        name=f"GitHub MFA Settings ({target})",
        source_type="Integration",
        status="Verified" if status.mfa_enabled else "Missing",
        url=mfa_settings_url(status),
    )
    return status, recorded
