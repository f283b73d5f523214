from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from datetime import datetime

import qrcode

from ..auth.tokens import TokenService
from ..core.enums import Role


@dataclass(frozen=True)
class IssuedQR:
    token: str
    expires_at: datetime
    image: str

    def to_dict(self) -> dict:
        return {"qrToken": self.token, "expiresAt": self.expires_at.isoformat(), "qrImage": self.image}


def render_png(data: str) -> bytes:
    """Render ``data`` as a PNG QR code."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(data)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


def png_data_uri(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


class QRIssuer:
    """Issues short-lived check-in QR tokens for a user."""

    def __init__(self, qr_tokens: TokenService, *, ttl_seconds: int):
        self._tokens = qr_tokens
        self._ttl = int(ttl_seconds)

    def generate_check_in_qr(self, user_id: int, role: Role) -> IssuedQR:
        token = self._tokens.issue_for(user_id=user_id, role=role, ttl=self._ttl)
        payload = self._tokens.verify(token)
        return IssuedQR(token=token, expires_at=payload.expires_at, image=png_data_uri(render_png(token)))
