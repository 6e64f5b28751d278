# src/formats/text_handler.py - v1
"""Plain text / Markdown handler.

One job per block of consecutive non-blank lines. Translations are written
to a sibling file named <stem>.<lang><suffix>; jobs must be written in
order, the first job truncates the target.
"""

from __future__ import annotations

import logging
from pathlib import Path

from transbatch.batch.collaborators import ResolvedFile
from transbatch.formats.base_handler import BaseFormatHandler
from transbatch.jobs.models import TranslationJob

logger = logging.getLogger(__name__)

BLOCK_SEPARATOR = "\n\n"


class PlainTextHandler(BaseFormatHandler):
    """Handler for local .txt and .md files."""

    @property
    def file_types(self) -> list[str]:
        return ["txt", "md"]

    def target_url(self, file: ResolvedFile, target_lang: str) -> str:
        source = Path(file.file_id)
        return str(source.with_name(f"{source.stem}.{target_lang}{source.suffix}"))

    async def create_jobs(
        self, file: ResolvedFile, target_lang: str
    ) -> list[TranslationJob]:
        source = Path(file.file_id)
        lines = self._read_lines(source)
        target = self.target_url(file, target_lang)
        jobs: list[TranslationJob] = []
        for start, end in block_ranges(lines):
            jobs.append(
                TranslationJob(
                    job_id=f"{file.file_id}#{len(jobs)}",
                    index=len(jobs),
                    source_path=str(source),
                    target_path=target,
                    start_line=start,
                    end_line=end,
                    label=f"lines {start + 1}-{end}",
                )
            )
        logger.debug("Split %s into %d blocks", source.name, len(jobs))
        return jobs

    async def extract_text(self, job: TranslationJob) -> str:
        lines = self._read_lines(Path(job.source_path))
        return "\n".join(lines[job.start_line:job.end_line])

    async def write_job(self, job: TranslationJob, text: str) -> None:
        target = Path(job.target_path)
        if job.index == 0:
            target.write_text(text.rstrip("\n") + "\n", encoding="utf-8")
            return
        with target.open("a", encoding="utf-8") as f:
            f.write("\n" + text.rstrip("\n") + "\n")

    @staticmethod
    def _read_lines(path: Path) -> list[str]:
        return path.read_text(encoding="utf-8").splitlines()


def block_ranges(lines: list[str]) -> list[tuple[int, int]]:
    """[start, end) line ranges of blank-line-separated blocks."""
    ranges: list[tuple[int, int]] = []
    start: int | None = None
    for i, line in enumerate(lines):
        if line.strip():
            if start is None:
                start = i
        elif start is not None:
            ranges.append((start, i))
            start = None
    if start is not None:
        ranges.append((start, len(lines)))
    return ranges
