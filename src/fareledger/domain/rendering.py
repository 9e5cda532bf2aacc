"""Human-readable rendering of export snapshots."""

from abc import ABC, abstractmethod
from typing import Any


class SnapshotRenderer(ABC):
    """Turns a snapshot document into an archivable artifact."""

    #: File extension of rendered artifacts, without the dot
    extension: str = "bin"

    @abstractmethod
    def render(self, snapshot: dict[str, Any], sha256: str) -> bytes:
        """Render a snapshot. The output must show the hash and numbering window verbatim."""
        pass


class TextSnapshotRenderer(SnapshotRenderer):
    """Plain-text rendering of a simplified receipts export."""

    extension = "txt"

    def render(self, snapshot: dict[str, Any], sha256: str) -> bytes:
        return "\n".join(self.render_lines(snapshot, sha256)).encode("utf-8") + b"\n"

    def render_lines(self, snapshot: dict[str, Any], sha256: str) -> list[str]:
        meta = snapshot["meta"]
        tenant = meta["tenant"]
        period = meta["period"]
        numbering = meta["numbering"]

        lines = [
            f"Payments export ({meta['type']}) {period['yyyymm']}",
            "=" * 72,
            f"Seller:       {tenant['name']}",
            f"Business ID:  {tenant['businessId'] or '-'}",
            f"VAT ID:       {tenant['vatId'] or '-'}",
            f"Window:       {period['from']} .. {period['to']}",
            f"Generated:    {meta['generatedAt']} by {meta['generatedBy']['email']}",
            f"Numbering:    {_numbering_window(numbering)}",
            f"SHA-256:      {sha256}",
            "",
            "VAT summary",
            "-" * 72,
        ]
        for bucket in snapshot["vat"]["summaryByRate"]:
            lines.append(_bucket_line(bucket))
        for bucket in snapshot["vat"]["summaryByRateAndMethod"]:
            lines.append(_bucket_line(bucket))

        lines += ["", "Receipts", "-" * 72]
        if not snapshot["payments"]:
            lines.append("No paid payments in this period.")
        for row in snapshot["payments"]:
            lines.append(
                f"{row['receiptNumber'] or '(unnumbered)':14s} {row['capturedAt']} "
                f"{row['method'] or '-':5s} {row['rate']:>5s} "
                f"{row['base']:>10s} {row['tax']:>9s} {row['total']:>10s} {row['currency']}"
            )

        exceptions = snapshot["exceptions"]
        lines += ["", "Exceptions", "-" * 72]
        for ride in exceptions["ridesWithoutPayments"]:
            lines.append(f"Ride without paid payment: {ride['rideId']} (ended {ride['endedAt']})")
        for payment in exceptions["paymentsWithoutRide"]:
            lines.append(f"Payment without ride: {payment['paymentId']} (captured {payment['capturedAt']})")
        for warning in exceptions["warnings"]:
            lines.append(f"Warning: {warning}")
        if not any(exceptions.values()):
            lines.append("None")
        return lines


def _numbering_window(numbering: dict[str, Any]) -> str:
    start, end = numbering["startingNumber"], numbering["endingNumber"]
    return (
        f"period {numbering['period']}, starting {'-' if start is None else start}, "
        f"ending {'-' if end is None else end} "
        f"({numbering['assignedCount']} new, {numbering['alreadyNumberedCount']} previously numbered)"
    )


def _bucket_line(bucket: dict[str, Any]) -> str:
    label = f"{bucket['rate']} {bucket['method'] or 'ALL'}"
    return (
        f"{label:12s} count {bucket['count']:4d}  base {bucket['base']:>10s}  "
        f"tax {bucket['tax']:>9s}  total {bucket['total']:>10s}"
    )
