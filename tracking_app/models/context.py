from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuthenticatedUser(BaseModel):
    """The logged-in caller, as reported by the host application."""

    id: Optional[str] = None
    is_admin: bool = False
    groups: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    def is_in_group(self, group: str) -> bool:
        return group in self.groups


class RequestContext(BaseModel):
    """
    Read-only snapshot of one inbound request.

    Built once per request by the middleware; every pipeline component reads
    from it and none of them changes it.
    """

    path: str = "/"
    query_params: Dict[str, str] = Field(default_factory=dict)
    full_url: str = ""
    user_agent: Optional[str] = None
    client_ip: Optional[str] = None
    referrer: Optional[str] = None
    server_name: str = ""

    user: Optional[AuthenticatedUser] = None

    is_console_request: bool = False
    is_cp_request: bool = False
    is_live_preview: bool = False

    # CGI-style attributes (REMOTE_ADDR, HTTP_USER_AGENT, ...) for server excludes
    server: Dict[str, str] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True)
