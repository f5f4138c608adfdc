"""
Job runner: transfer a batch of files with one shared protector registry.

Job-fatal problems (bad field spec, protector construction) surface before
any file is touched. Per-file failures are recorded and the job moves on,
unless ``fail_fast`` is set.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Iterable

from maskstream.anonymize.fields import FieldInfo, parse_field_spec
from maskstream.anonymize.protector import ProtectionConfig, ProtectorFactory, load_protector_factory
from maskstream.anonymize.registry import FormatRegistry
from maskstream.config.loader import Config
from maskstream.exceptions import ConfigurationError, FileTransferError
from maskstream.listing.descriptor import FileDescriptor
from maskstream.sinks.destinations import Destination, build_destination
from maskstream.sinks.writer import DEFAULT_CHUNK_SIZE, SinkWriter
from maskstream.sources.opener import SourceOpener
from maskstream.transform.codec import CsvCodec
from maskstream.transform.driver import FileTransferResult, TransferState, TransformDriver
from maskstream.transform.pipe import DEFAULT_CAPACITY
from maskstream.utils.logging import get_logger

logger = get_logger("maskstream.job")


@dataclass
class TransferJob:
    """Everything needed to transfer a batch of files."""

    fields: list[FieldInfo]
    protection: ProtectionConfig
    destination: Destination
    protector_factory: ProtectorFactory | None = None
    source_opener: SourceOpener = field(default_factory=SourceOpener)
    codec: CsvCodec = field(default_factory=CsvCodec)
    destination_prefix: str = ""
    content_type: str | None = None
    buffer_size: int = DEFAULT_CAPACITY
    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_concurrent_files: int = 1
    fail_fast: bool = False
    header: bool = True

    @classmethod
    def from_config(cls, config: Config | dict[str, Any]) -> TransferJob:
        """
        Build a job from configuration.

        Raises:
            ConfigurationError: If any section is invalid (MalformedSpecError
                for the field spec)
        """
        cfg = config if isinstance(config, Config) else Config(config)
        cfg.validate()

        fields = parse_field_spec(str(cfg.get("fields")))

        protection_cfg = cfg.get("protection", {}) or {}
        try:
            factory = load_protector_factory(protection_cfg.get("factory"))
        except ValueError as e:
            raise ConfigurationError(f"protection.factory: {e}") from e

        try:
            source_opener = SourceOpener.from_config(cfg.get("source"))
        except ValueError as e:
            raise ConfigurationError(f"source: {e}") from e

        try:
            destination = build_destination(cfg.get("destination"))
        except ValueError as e:
            raise ConfigurationError(f"destination: {e}") from e

        csv_cfg = cfg.get("csv", {}) or {}
        codec = CsvCodec(
            delimiter=csv_cfg.get("delimiter", ","),
            quotechar=csv_cfg.get("quotechar", '"'),
            encoding=csv_cfg.get("encoding", "utf-8"),
        )

        return cls(
            fields=fields,
            protection=ProtectionConfig.from_dict(protection_cfg),
            destination=destination,
            protector_factory=factory,
            source_opener=source_opener,
            codec=codec,
            destination_prefix=cfg.get("destination_prefix", "") or "",
            content_type=cfg.get("content_type"),
            buffer_size=_positive_int(cfg, "transfer.buffer_size", DEFAULT_CAPACITY),
            chunk_size=_positive_int(cfg, "transfer.chunk_size", DEFAULT_CHUNK_SIZE),
            max_concurrent_files=_positive_int(cfg, "transfer.max_concurrent_files", 1),
            fail_fast=bool(cfg.get("transfer.fail_fast", False)),
            header=bool(cfg.get("transfer.header", True)),
        )

    def destination_key(self, descriptor: FileDescriptor) -> str:
        """Destination key: prefix + relative path, processing suffixes removed."""
        name = self.source_opener.output_name(descriptor.relative_path)
        prefix = self.destination_prefix.strip("/")
        return f"{prefix}/{name}" if prefix else name


@dataclass
class JobSummary:
    """Per-file results of one job run."""

    results: list[FileTransferResult] = field(default_factory=list)
    skipped: list[FileDescriptor] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return sum(1 for r in self.results if r.ok)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.ok)

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "processed": self.processed,
            "failed": self.failed,
            "skipped": len(self.skipped),
            "errors": {r.descriptor.full_path: str(r.error) for r in self.results if r.error is not None},
        }


def build_registry(job: TransferJob) -> FormatRegistry:
    """
    Build, prepare and freeze the protector registry for a job.

    Raises:
        ProtectorInitError: If any protector cannot be built
    """
    registry = FormatRegistry(job.protection, job.protector_factory)
    try:
        registry.prepare(job.fields)
    except BaseException:
        registry.close()
        raise
    registry.freeze()
    return registry


async def run_job(
    job: TransferJob,
    descriptors: Iterable[FileDescriptor],
    *,
    registry: FormatRegistry | None = None,
) -> JobSummary:
    """
    Transfer every descriptor and return the per-file summary.

    Args:
        job: Job configuration
        descriptors: Files to transfer (directories and descriptors without
            a relative path are skipped)
        registry: Prepared registry to reuse (default: built from ``job``
            and closed when the run ends)

    Raises:
        ProtectorInitError: Before any file is processed, if protectors cannot be built
    """
    owns_registry = registry is None
    registry = registry or build_registry(job)
    summary = JobSummary()

    to_run: list[FileDescriptor] = []
    for descriptor in descriptors:
        if descriptor.is_dir or not descriptor.relative_path:
            logger.info(f"Skipping {descriptor.full_path}: directory or empty relative path")
            summary.skipped.append(descriptor)
        else:
            to_run.append(descriptor)

    sink = SinkWriter(job.destination, chunk_size=job.chunk_size)
    semaphore = asyncio.Semaphore(job.max_concurrent_files)
    stop = asyncio.Event()

    try:
        with TransformDriver(
            job.fields,
            registry,
            codec=job.codec,
            source_opener=job.source_opener,
            buffer_size=job.buffer_size,
            header=job.header,
            max_concurrent_files=job.max_concurrent_files,
        ) as driver:

            async def run_one(descriptor: FileDescriptor) -> FileTransferResult | None:
                async with semaphore:
                    if stop.is_set():
                        summary.skipped.append(descriptor)
                        return None
                    result = await _transfer_one(job, driver, sink, descriptor)
                    if not result.ok and job.fail_fast:
                        logger.error("Stopping job after first failed file (fail_fast)")
                        stop.set()
                    return result

            outcomes = await asyncio.gather(*(run_one(d) for d in to_run))
    finally:
        if owns_registry:
            registry.close()

    summary.results = [r for r in outcomes if r is not None]
    logger.info(
        f"Job finished: {summary.processed} processed, {summary.failed} failed, {len(summary.skipped)} skipped"
    )
    return summary


def run_job_sync(
    job: TransferJob,
    descriptors: Iterable[FileDescriptor],
    *,
    registry: FormatRegistry | None = None,
) -> JobSummary:
    """Blocking wrapper around ``run_job``."""
    return asyncio.run(run_job(job, descriptors, registry=registry))


def _positive_int(cfg: Config, key: str, default: int) -> int:
    value = cfg.get(key, default)
    try:
        number = int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"'{key}' must be an integer, got {value!r}") from e
    if number < 1:
        raise ConfigurationError(f"'{key}' must be at least 1, got {number}")
    return number


async def _transfer_one(
    job: TransferJob,
    driver: TransformDriver,
    sink: SinkWriter,
    descriptor: FileDescriptor,
) -> FileTransferResult:
    key = job.destination_key(descriptor)
    try:
        return await driver.transfer(
            descriptor,
            sink,
            key,
            content_type=job.content_type,
            metadata=descriptor.metadata(),
        )
    except FileTransferError as e:
        logger.error(f"Transfer failed for {descriptor.full_path}: {e.message}")
        return FileTransferResult(descriptor, key, state=TransferState.FAILED, error=e)
