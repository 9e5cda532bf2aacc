"""Export archive domain service.

Archived exports are the legal record: the JSON file holds exactly the bytes
that were hashed, the rendered document sits next to it, and a database row
keeps the hash for later verification.
"""

import hashlib
from datetime import datetime, UTC
from decimal import Decimal
from pathlib import Path
from typing import Callable, Optional, Union

from fareledger.database.base import Database
from fareledger.domain.entities import ExportArchive, ExportType, GeneratedBy
from fareledger.domain.errors import NotFoundError, archive_not_found
from fareledger.domain.rendering import SnapshotRenderer, TextSnapshotRenderer
from fareledger.domain.snapshot import SnapshotService
from fareledger.domain.vat import CENT
from fareledger.utils.logger import get_logger

logger = get_logger(__name__)


def archive_timestamp(instant: datetime) -> str:
    """Compact UTC timestamp for file names, e.g. 20250826-134210."""
    return instant.astimezone(UTC).strftime("%Y%m%d-%H%M%S")


class ExportArchiveService:
    """Service for writing, listing and verifying archived exports."""

    def __init__(
        self,
        db: Database,
        exports_root: Union[str, Path],
        snapshots: Optional[SnapshotService] = None,
        renderer: Optional[SnapshotRenderer] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize archive service.

        Args:
            db: Database instance
            exports_root: Directory under which tenant/period folders are created
            snapshots: Snapshot service (defaults to one over db)
            renderer: Document renderer (defaults to plain text)
            clock: Source of the file name timestamp (defaults to now, UTC)
        """
        self.db = db
        self.exports_root = Path(exports_root)
        self.snapshots = snapshots or SnapshotService(db)
        self.renderer = renderer or TextSnapshotRenderer()
        self.clock = clock or (lambda: datetime.now(UTC))

    def export(
        self,
        tenant_id: str,
        start: datetime,
        end: datetime,
        generated_by: GeneratedBy,
        include_annex: bool = False,
        export_type: Union[ExportType, str] = ExportType.SIMPLIFIED,
    ) -> ExportArchive:
        """Build a snapshot, write its JSON and rendered document, and record the archive.

        Nothing is written unless numbering and dataset building both succeed.

        Returns:
            The recorded ExportArchive
        """
        built = self.snapshots.build_snapshot(
            tenant_id,
            start,
            end,
            generated_by=generated_by,
            export_type=export_type,
            include_annex=include_annex,
        )
        document = self.renderer.render(built.snapshot, built.sha256)

        period = built.period
        type_folder = built.snapshot["meta"]["type"]
        directory = self.exports_root / tenant_id / period / type_folder
        directory.mkdir(parents=True, exist_ok=True)

        base_name = self._free_base_name(directory, f"payments-{period}-{archive_timestamp(self.clock())}")
        json_path = directory / f"{base_name}.json"
        document_path = directory / f"{base_name}.{self.renderer.extension}"

        payments = built.snapshot["payments"]
        total_amount = sum((Decimal(p["total"]) for p in payments), Decimal(0)).quantize(CENT)

        # Files without a recorded archive row are never left behind
        try:
            json_path.write_bytes(built.canonical_json.encode("utf-8"))
            document_path.write_bytes(document)
            archive_id = self.db.create_export_archive(
                tenant_id=tenant_id,
                period=period,
                export_type=ExportType(type_folder),
                created_by=generated_by.user_id,
                json_path=str(json_path),
                document_path=str(document_path),
                sha256=built.sha256,
                count=len(payments),
                total_amount=total_amount,
            )
        except Exception:
            json_path.unlink(missing_ok=True)
            document_path.unlink(missing_ok=True)
            logger.error("Export archiving failed, files removed", tenant_id=tenant_id, period=period)
            raise
        logger.info(
            "Export archived",
            tenant_id=tenant_id,
            period=period,
            archive_id=archive_id,
            json_path=str(json_path),
            sha256=built.sha256,
        )
        return self.get_archive(archive_id)

    def get_archive(self, archive_id: str) -> ExportArchive:
        """Get an archive by ID.

        Raises:
            NotFoundError: If the archive does not exist
        """
        archive = self.db.get_export_archive(archive_id)
        if archive is None:
            raise NotFoundError(archive_not_found(archive_id))
        return archive

    def list_archives(self, tenant_id: str, period: Optional[str] = None) -> list[ExportArchive]:
        """List a tenant's archives, newest first."""
        return self.db.list_export_archives(tenant_id, period)

    def verify_archive(self, archive_id: str) -> bool:
        """Recompute the SHA-256 of an archived JSON file and compare it with the record.

        Returns:
            True if the file exists and matches, False otherwise

        Raises:
            NotFoundError: If the archive does not exist
        """
        archive = self.get_archive(archive_id)
        path = Path(archive.json_path)
        if not path.is_file():
            logger.warning("Archived snapshot file is missing", archive_id=archive_id, json_path=str(path))
            return False
        digest = hashlib.sha256(path.read_bytes()).hexdigest()
        if digest != archive.sha256:
            logger.warning(
                "Archived snapshot does not match its hash",
                archive_id=archive_id,
                expected=archive.sha256,
                actual=digest,
            )
            return False
        return True

    def _free_base_name(self, directory: Path, base_name: str) -> str:
        # Two exports within the same second must not overwrite each other
        candidate, suffix = base_name, 1
        while (directory / f"{candidate}.json").exists():
            candidate = f"{base_name}-{suffix}"
            suffix += 1
        return candidate
