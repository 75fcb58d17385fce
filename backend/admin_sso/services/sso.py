"""Helpers shared by the OAuth sign-in flows: email aliasing, locale, pages."""

import html
import json
from typing import Any, Mapping, Sequence

from admin_sso.config import Settings

DEFAULT_LOCALE = "en"


def add_gmail_alias(email: str, alias: str | None) -> str:
    """Rewrite ``user@domain`` as ``user+alias@domain``.

    Returns the email unchanged when no alias is configured or when it already
    carries the alias, so applying it twice is harmless.
    """
    if not alias:
        return email
    alias = alias.replace("+", "")
    if not alias or "@" not in email:
        return email

    local, _, domain = email.rpartition("@")
    if local.endswith(f"+{alias}"):
        return email
    return f"{local}+{alias}@{domain}"


def _accept_language_tags(header: str) -> list[str]:
    weighted = []
    for position, part in enumerate(header.split(",")):
        tag, _, params = part.strip().partition(";")
        tag = tag.strip().lower()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in params.split(";"):
            key, _, value = param.strip().partition("=")
            if key == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, position, tag))
    return [tag for _, _, tag in sorted(weighted)]


def locale_find_by_header(
    headers: Mapping[str, str], supported: Sequence[str] = ("en", "ja")
) -> str:
    """Pick the preferred supported locale from an Accept-Language header."""
    header = headers.get("accept-language")
    if not header:
        return DEFAULT_LOCALE
    for tag in _accept_language_tags(header):
        primary = tag.split("-")[0]
        if primary in supported:
            return primary
    return DEFAULT_LOCALE


def render_sign_up_error(message: str) -> str:
    return f"""<!doctype html>
<html>
<head>
<meta charset="utf-8">
<title>Authentication failed</title>
</head>
<body>
<h3>Authentication failed</h3>
<p>{html.escape(message)}</p>
</body>
</html>"""


def _script_literal(value: Any) -> str:
    # json.dumps does not escape "</", which would close the script element
    return json.dumps(value).replace("</", "<\\/")


def render_sign_up_success(
    jwt_token: str, user: Mapping[str, Any], nonce: str, settings: Settings
) -> str:
    """Page that stores the session for the admin panel and navigates to it."""
    storage = "localStorage" if settings.REMEMBER_ME else "sessionStorage"
    return f"""<!doctype html>
<html>
<head>
<meta charset="utf-8">
<noscript>
<h3>JavaScript must be enabled for authentication</h3>
</noscript>
<script nonce="{html.escape(nonce)}">
  window.addEventListener('load', function() {{
    {storage}.setItem('jwtToken', {_script_literal(json.dumps(jwt_token))});
    {storage}.setItem('userInfo', {_script_literal(json.dumps(user, default=str))});
    location.href = {_script_literal(settings.ADMIN_URL)};
  }})
</script>
</head>
<body>
</body>
</html>"""
