"""Ingestion service.

Reads every file of a directory, splits it into metadata and body, derives a
stable point id from the filename and upserts it through the embedding
service. Re-running over the same directory updates points in place.
"""

import asyncio
from pathlib import Path

from services.embedding.EmbeddingService import EmbeddingService
from shared.exceptions.errors import ValidationError
from shared.helper.HelperConfig import HelperConfig
from shared.helper.document_parser import parse_document
from shared.helper.identity import identity_for
from shared.models.ingest import IngestReport


class IngestService:
    """Batch-loads a directory of text documents into the vector store."""

    def __init__(self, helper_config: HelperConfig, embedding_service: EmbeddingService) -> None:
        self.logging = helper_config.get_logger()
        self._embedding_service = embedding_service
        self._concurrency = helper_config.get_int_val("INGEST_CONCURRENCY", default=5, minimum=1)

    ##########################################
    ################ CORE ####################
    ##########################################

    async def do_ingest_directory(self, directory: str | Path) -> IngestReport:
        """Ingest all regular files in a directory (non-recursive).

        A failing file is logged and counted; the remaining files continue.

        Args:
            directory (str | Path): The directory to read.

        Returns:
            IngestReport: Counts of processed and skipped files, names of failed ones.

        Raises:
            ValidationError: If the path is not a directory.
        """
        path = Path(directory)
        if not path.is_dir():
            raise ValidationError(f"Ingest directory '{path}' does not exist or is not a directory.")

        files = sorted(entry for entry in path.iterdir() if entry.is_file())
        self.logging.info("Ingesting %d file(s) from '%s'...", len(files), path)

        sem = asyncio.Semaphore(self._concurrency)
        results = await asyncio.gather(
            *[self._ingest_file(file, sem) for file in files],
            return_exceptions=True,
        )

        report = IngestReport()
        for file, result in zip(files, results):
            if isinstance(result, Exception):
                report.failed.append(file.name)
            elif result:
                report.processed += 1
            else:
                report.skipped += 1

        self.logging.info(
            "Ingest complete for '%s': %d processed, %d skipped, %d failed.",
            path, report.processed, report.skipped, len(report.failed),
        )
        return report

    ##########################################
    ############## FILE INGEST ###############
    ##########################################

    async def _ingest_file(self, file: Path, sem: asyncio.Semaphore) -> bool:
        """Parse and upsert a single file.

        Returns:
            bool: True if stored, False if skipped because the body is empty
                  (any point stored earlier for the file is removed).

        Raises:
            Exception: Propagated to gather() if reading, embedding or storing fails.
        """
        async with sem:
            point_id = identity_for(file.name)
            try:
                content = await asyncio.to_thread(file.read_text, encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                self.logging.error("Failed to read %s: %s", file.name, exc)
                raise

            document = parse_document(content)
            if not document.text:
                # an emptied file must not leave its previous text searchable
                self.logging.info("Skipping %s: empty body, removing any stored point (ID: %s).", file.name, point_id)
                await self._embedding_service.do_delete(point_id)
                return False

            self.logging.info("Sending: %s (ID: %s)", file.name, point_id)
            try:
                result = await self._embedding_service.do_upsert(point_id, document.text, document.metadata)
            except Exception as exc:
                self.logging.error("Failed to embed %s: %s", file.name, exc)
                raise
            self.logging.debug("%s: %s", file.name, result.message)
            return True
