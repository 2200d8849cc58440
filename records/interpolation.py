"""
records/interpolation.py -- {{campo}} placeholder substitution for the editor.

Legal documents are written as HTML containing placeholders such as
{{nome}} or {{cpfCnpj}}. A preview replaces each known placeholder with the
selected client's value. Unknown placeholders are left exactly as written so
the author can see what did not resolve. Substituted values are HTML-escaped
since the content is editor HTML.
"""

import html
import re
from typing import Optional

from records.models import Client

FIELD_NAMES = ("nome", "cpfCnpj", "endereco", "cidade", "estado", "email", "telefone")

_PLACEHOLDER = re.compile(r"\{\{\s*([A-Za-z_][A-Za-z0-9_]*)\s*\}\}")


def client_field_values(client: Client) -> dict[str, str]:
    """Map every placeholder name to the client's value ("" when unset).

    endereco joins street and number; telefone prefers the mobile number.
    """
    address = f"{client.street}, {client.number or ''}" if client.street else ""
    return {
        "nome": client.name,
        "cpfCnpj": client.tax_id,
        "endereco": address,
        "cidade": client.city or "",
        "estado": client.state or "",
        "email": client.email or "",
        "telefone": client.mobile or client.phone or "",
    }


def interpolate(content: str, values: Optional[dict[str, str]]) -> str:
    """Replace {{name}} placeholders found in values; leave the rest untouched."""
    if not values:
        return content

    def _sub(match: re.Match) -> str:
        name = match.group(1)
        if name in values:
            return html.escape(values[name], quote=False)
        return match.group(0)

    return _PLACEHOLDER.sub(_sub, content)
