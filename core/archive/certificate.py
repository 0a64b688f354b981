"""
Verification Certificate

Renders the self-contained HTML certificate archived next to every anchored
record. The document is meant to be shared, so it is never encrypted.
"""

from __future__ import annotations

from datetime import datetime, timezone
from html import escape
from typing import Optional

from core.schemas.records import CertificateData


_STYLE = """
    body {
      font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, Helvetica, Arial, sans-serif;
      max-width: 800px;
      margin: 0 auto;
      padding: 40px 20px;
      background: linear-gradient(135deg, #667eea 0%, #764ba2 100%);
      min-height: 100vh;
    }
    .certificate { background: white; border-radius: 12px; padding: 40px; }
    .header { text-align: center; border-bottom: 2px solid #f0f0f0; padding-bottom: 30px; margin-bottom: 30px; }
    h1 { color: #333; margin: 10px 0; font-size: 28px; }
    .subtitle { color: #666; font-size: 14px; }
    .field { margin: 20px 0; display: flex; align-items: flex-start; }
    .label { font-weight: 600; color: #555; min-width: 140px; margin-right: 20px; }
    .value {
      flex: 1; color: #333; word-break: break-all;
      font-family: 'Courier New', monospace; background: #f8f9fa;
      padding: 8px 12px; border-radius: 6px;
    }
    .verification {
      background: #e8f5e9; border: 2px solid #4caf50; border-radius: 8px;
      padding: 20px; margin: 30px 0; text-align: center;
    }
    .verification h3 { color: #2e7d32; margin: 0 0 10px; }
    table { width: 100%; border-collapse: collapse; }
    td, th { text-align: left; padding: 6px 8px; border-bottom: 1px solid #eee; font-family: monospace; }
    .footer { text-align: center; margin-top: 30px; padding-top: 20px; border-top: 2px solid #f0f0f0; color: #666; font-size: 12px; }
    a { color: #667eea; text-decoration: none; }
"""


def _field(label: str, value_html: str) -> str:
    return (
        '    <div class="field">\n'
        f'      <div class="label">{escape(label)}:</div>\n'
        f'      <div class="value">{value_html}</div>\n'
        "    </div>\n"
    )


def render_certificate(
    data: CertificateData,
    *,
    generated_at: Optional[datetime] = None,
) -> str:
    """
    Render a verification certificate as HTML.

    A single entry is shown as Request URL / Response Status fields;
    several entries (a batch) are listed in a table.
    """
    generated = (generated_at or datetime.now(timezone.utc)).isoformat()
    tx = escape(data.transaction_hash)
    if data.explorer_url:
        tx_html = f'<a href="{escape(data.explorer_url)}" target="_blank">{tx}</a>'
    else:
        tx_html = tx

    fields = [
        _field("Record ID", escape(data.record_id)),
        _field("Transaction Hash", tx_html),
        _field("Timestamp", escape(data.timestamp.isoformat())),
    ]

    if len(data.entries) == 1:
        entry = data.entries[0]
        fields.append(_field("Request URL", escape(entry.request_url)))
        fields.append(_field("Response Status", str(entry.response_status)))
    elif data.entries:
        rows = "".join(
            f"<tr><td>{escape(e.request_url)}</td><td>{e.response_status}</td></tr>"
            for e in data.entries
        )
        fields.append(_field("Records", str(len(data.entries))))
        fields.append(
            f'    <table><tr><th>Request URL</th><th>Status</th></tr>{rows}</table>\n'
        )

    fields.append(_field("Network", escape(data.network)))

    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8">\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0">\n'
        "  <title>PROOF Protocol - Verification Certificate</title>\n"
        f"  <style>{_STYLE}  </style>\n"
        "</head>\n"
        "<body>\n"
        '  <div class="certificate">\n'
        '    <div class="header">\n'
        "      <h1>PROOF Protocol Certificate</h1>\n"
        '      <div class="subtitle">Blockchain-Verified API Request</div>\n'
        "    </div>\n"
        '    <div class="verification">\n'
        "      <h3>&#10003; Verified on Blockchain</h3>\n"
        f"      <div>This API request has been permanently recorded on the {escape(data.network)} blockchain</div>\n"
        "    </div>\n"
        + "".join(fields)
        + '    <div class="footer">\n'
        "      <p>This certificate proves that an API request was made and its response "
        "was recorded immutably on the blockchain.</p>\n"
        f"      <p>Certificate generated on {escape(generated)}</p>\n"
        "    </div>\n"
        "  </div>\n"
        "</body>\n"
        "</html>\n"
    )
