"""Integration tests for end-to-end workflows."""

import hashlib
import json
import re
from pathlib import Path

from fareledger.cli.main import cli


def _id(output: str) -> str:
    match = re.search(r"ID: (\S+)\)", output)
    assert match is not None, output
    return match.group(1)


def test_full_workflow(cli_runner, temp_db, tmp_path):
    """Tenant → driver → rides → payments → number → export → verify."""

    def run(*args):
        result = cli_runner.invoke(cli, ["--db-path", temp_db.database_path, *args])
        assert result.exit_code == 0, result.output
        return result.output

    tenant_id = _id(run("tenant", "create", "Acme Taxi", "--business-id", "123456789", "--vat-id", "EL123456789"))
    driver_id = _id(run("driver", "create", tenant_id, "--first-name", "Nikos", "--last-name", "Papadopoulos"))

    # Ride finished just before the VAT cutover, paid just after it
    old_ride = _id(
        run(
            "ride", "add", tenant_id, "--driver", driver_id,
            "--ended-at", "2024-12-31T23:50:00Z",
            "--subtotal", "20.00", "--tax", "2.00", "--total", "22.00",
        )
    )
    run("payment", "add", tenant_id, "22.00", "--ride", old_ride, "--captured-at", "2025-01-01T00:05:00Z")

    new_ride = _id(run("ride", "add", tenant_id, "--driver", driver_id, "--ended-at", "2025-01-10T10:00:00Z", "--total", "49.00"))
    run(
        "payment", "add", tenant_id, "50.00", "--provider", "STRIPE",
        "--ride", new_ride, "--captured-at", "2025-01-10T10:02:00Z",
    )

    unpaid_ride = _id(run("ride", "add", tenant_id, "--ended-at", "2025-01-12T08:00:00Z", "--total", "15.00"))
    walk_in = _id(run("payment", "add", tenant_id, "114.00", "--captured-at", "2025-01-15T09:00:00Z"))

    output = run("export", "number", tenant_id, "--month", "2025-01")
    assert "assigned 3" in output

    output = run(
        "export", "create", tenant_id, "--month", "2025-01",
        "--exports-root", str(tmp_path), "--user-id", "u-1", "--email", "ops@example.com",
    )
    archive_id = re.search(r"Created export (\S+) for 202501", output).group(1)
    json_path = Path(re.search(r"JSON:\s+(\S+)", output).group(1))
    assert "Payments: 3  Total: 186.00" in output

    snapshot = json.loads(json_path.read_text(encoding="utf-8"))
    assert [p["receiptNumber"] for p in snapshot["payments"]] == ["202501-0001", "202501-0002", "202501-0003"]
    assert [p["rate"] for p in snapshot["payments"]] == ["0.10", "0.14", "0.14"]
    assert snapshot["payments"][0]["driverName"] == "Nikos Papadopoulos"
    assert snapshot["payments"][0]["base"] == "20.00"
    assert snapshot["payments"][1]["method"] == "CARD"
    assert snapshot["payments"][2]["base"] == "100.00"
    assert snapshot["meta"]["numbering"]["alreadyNumberedCount"] == 3
    assert snapshot["exceptions"]["ridesWithoutPayments"][0]["rideId"] == unpaid_ride
    assert snapshot["exceptions"]["paymentsWithoutRide"][0]["paymentId"] == walk_in
    assert len(snapshot["exceptions"]["warnings"]) == 1
    assert new_ride in snapshot["exceptions"]["warnings"][0]

    digest = hashlib.sha256(json_path.read_bytes()).hexdigest()
    assert digest in output

    assert "OK" in run("export", "verify", archive_id)
    assert archive_id in run("export", "list", tenant_id, "--period", "202501")
