"""UPI payment QR code generation."""

import asyncio
import base64
import io
from typing import Any
from urllib.parse import urlencode

import qrcode
from qrcode.constants import ERROR_CORRECT_M

from chat_agent.config import get_config
from chat_agent.decision import ToolName
from chat_agent.exceptions import ToolError
from chat_agent.logging import get_logger
from chat_agent.tools.registry import Tool

log = get_logger(__name__)


def build_upi_uri(upi_id: str, amount: float, payee_name: str = "", currency: str = "INR") -> str:
    """Build a ``upi://pay`` deep link."""
    query: dict[str, str] = {"pa": upi_id}
    if payee_name:
        query["pn"] = payee_name
    query["am"] = f"{amount:.2f}".rstrip("0").rstrip(".")
    query["cu"] = currency
    return "upi://pay?" + urlencode(query, safe="@")


def encode_qr_png(data: str, box_size: int = 10, border: int = 4) -> str:
    """Encode text as a QR code and return a PNG data URI."""
    qr = qrcode.QRCode(error_correction=ERROR_CORRECT_M, box_size=box_size, border=border)
    qr.add_data(data)
    qr.make(fit=True)
    image = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    image.save(buffer)
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


class UpiQrTool(Tool):
    """Generate a UPI QR code for payment."""

    name = ToolName.GENERATE_UPI_QR
    description = "Generate a UPI QR code for payment"

    async def execute(
        self,
        upi_id: str | None = None,
        amount: Any = None,
        **kwargs: Any,
    ) -> dict[str, str]:
        payee = str(upi_id or "").strip()
        if not payee:
            raise ToolError("'upi_id' is required to generate a UPI QR code")
        if isinstance(amount, bool):
            raise ToolError("'amount' must be a number")
        try:
            value = float(amount)
        except (TypeError, ValueError):
            raise ToolError("'amount' must be a number")

        cfg = get_config().upi
        uri = build_upi_uri(payee, value, payee_name=cfg.payee_name, currency=cfg.currency)
        qr_code = await asyncio.to_thread(encode_qr_png, uri, cfg.box_size, cfg.border)
        log.info("UPI QR generated", upi_id=payee, amount=value)
        return {"qrCode": qr_code}
