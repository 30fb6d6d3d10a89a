"""
IRMA Trust Provider
===================

Trust provider backed by the irmago tooling.

Scheme download and update run through the `irma` CLI; signature
verification runs through a verification helper that wraps
`SignedMessage.Verify` and reports its result as JSON:

    $ irma-sigverify --schemes <dir> < message.json
    {"status": "VALID", "attributes": [[{"id": "...", "rawvalue": "..."}]]}

Scheme folders are parsed here to build configuration snapshots. Every
refresh works on a copy of the current folder under `.generations/`, so a
helper still reading an older snapshot never sees its files change. The
`.generations/CURRENT` file names the newest good generation, which is
what a restarted service loads.

Version: 0.1.0
"""

import asyncio
import json
import shutil
import subprocess
import time
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Any

from shared.config import settings, TrustMode
from shared.logging import get_logger
from shared.trust.exceptions import (
    ConfigurationError,
    SchemeDownloadError,
    SchemeUpdateError,
)
from shared.trust.models import (
    AttributeList,
    DisclosedAttribute,
    ProofStatus,
    SchemeInfo,
    SignedMessage,
    TrustConfiguration,
    VerificationOutcome,
)
from shared.trust.provider import TrustProvider

logger = get_logger(__name__)

GENERATIONS_DIR = ".generations"
CURRENT_FILE = "CURRENT"
DESCRIPTION_FILE = "description.xml"


def storage_root(path: Path) -> Path:
    """Return the scheme storage root a snapshot path belongs to."""
    if path.parent.name == GENERATIONS_DIR:
        return path.parent.parent
    return path


def scheme_folders(path: Path) -> list[Path]:
    """
    List the scheme folders directly below a storage location.

    A scheme folder is a non-hidden directory holding a description.xml;
    its name is the scheme id irmago uses.
    """
    return [
        entry
        for entry in sorted(path.iterdir())
        if not entry.name.startswith(".")
        and entry.is_dir()
        and (entry / DESCRIPTION_FILE).is_file()
    ]


def read_current_generation(root: Path) -> int | None:
    """Return the generation recorded as current below root, if any."""
    marker = root / GENERATIONS_DIR / CURRENT_FILE
    try:
        generation = int(marker.read_text().strip())
    except FileNotFoundError:
        return None
    except (OSError, ValueError) as e:
        logger.warning("irma_current_generation_unreadable", path=str(marker), error=str(e))
        return None

    if not (root / GENERATIONS_DIR / str(generation)).is_dir():
        logger.warning("irma_current_generation_missing", generation=generation)
        return None
    return generation


def write_current_generation(root: Path, generation: int) -> None:
    """Record generation as current; the rename keeps the marker whole."""
    marker = root / GENERATIONS_DIR / CURRENT_FILE
    pending = marker.with_name(f"{CURRENT_FILE}.tmp")
    pending.write_text(f"{generation}\n")
    pending.replace(marker)


def load_latest_configuration(path: Path) -> TrustConfiguration:
    """
    Parse the newest good scheme material below a storage location.

    Falls back to the root folder when no current generation is recorded
    or the recorded one is unusable.
    """
    root = storage_root(path)
    generation = read_current_generation(root)
    if generation is not None:
        try:
            configuration = parse_scheme_folder(
                root / GENERATIONS_DIR / str(generation), generation
            )
        except ConfigurationError as e:
            logger.warning("irma_current_generation_invalid", generation=generation, error=str(e))
        else:
            if not configuration.is_empty:
                return configuration
    return parse_scheme_folder(root)


def parse_scheme_folder(path: Path, generation: int = 0) -> TrustConfiguration:
    """
    Parse every scheme folder below a storage location.

    Folders without a description.xml (requestor schemes, staging
    directories) are skipped.

    Args:
        path: Scheme storage directory
        generation: Generation number recorded on the snapshot

    Returns:
        TrustConfiguration snapshot

    Raises:
        ConfigurationError: If the directory or a scheme description
            cannot be read
    """
    if not path.is_dir():
        raise ConfigurationError(f"Scheme directory not found: {path}")

    schemes: dict[str, SchemeInfo] = {}
    try:
        for scheme_dir in scheme_folders(path):
            info = _parse_scheme(scheme_dir, scheme_dir / DESCRIPTION_FILE)
            schemes[info.id] = info
    except (OSError, ET.ParseError, ValueError) as e:
        raise ConfigurationError(f"Failed to parse schemes in {path}: {e}") from e

    return TrustConfiguration(path=path, schemes=schemes, generation=generation)


def _parse_scheme(scheme_dir: Path, description: Path) -> SchemeInfo:
    root = ET.parse(description).getroot()
    scheme_id = (root.findtext("Id") or scheme_dir.name).strip()
    url = root.findtext("Url")

    timestamp = None
    timestamp_file = scheme_dir / "timestamp"
    if timestamp_file.is_file():
        timestamp = int(timestamp_file.read_text().strip())

    issuers: list[str] = []
    public_keys = 0
    for issuer_dir in sorted(scheme_dir.iterdir()):
        issuer_description = issuer_dir / DESCRIPTION_FILE
        if not issuer_dir.is_dir() or not issuer_description.is_file():
            continue
        issuer_root = ET.parse(issuer_description).getroot()
        if issuer_root.tag != "IssuerDescription":
            continue
        issuers.append((issuer_root.findtext("ID") or issuer_dir.name).strip())
        keys_dir = issuer_dir / "PublicKeys"
        if keys_dir.is_dir():
            public_keys += len(list(keys_dir.glob("*.xml")))

    return SchemeInfo(
        id=scheme_id,
        url=url.strip() if url else None,
        timestamp=timestamp,
        issuers=tuple(issuers),
        public_key_count=public_keys,
    )


def parse_verification_output(stdout: str) -> VerificationOutcome:
    """
    Convert the verification helper's JSON report into an outcome.

    Any report that cannot be understood becomes an ERROR outcome.
    """
    try:
        report = json.loads(stdout)
    except json.JSONDecodeError as e:
        return VerificationOutcome.error(f"Unreadable verifier output: {e}")

    if not isinstance(report, dict):
        return VerificationOutcome.error("Verifier output is not an object")

    if report.get("error"):
        return VerificationOutcome.error(str(report["error"]))

    try:
        status = ProofStatus(report.get("status"))
    except ValueError:
        return VerificationOutcome.error(f"Unknown proof status: {report.get('status')!r}")

    if status != ProofStatus.VALID:
        return VerificationOutcome.invalid(status)

    try:
        attributes: AttributeList = [
            [
                DisclosedAttribute(
                    identifier=attr["id"],
                    raw_value=attr.get("rawvalue"),
                    status=attr.get("status"),
                )
                for attr in group
            ]
            for group in report.get("attributes") or []
        ]
    except (KeyError, TypeError, ValueError) as e:
        return VerificationOutcome.error(f"Malformed attribute list: {e}")

    return VerificationOutcome.valid(attributes)


class IrmaTrustProvider(TrustProvider):
    """
    Trust provider delegating to irmago.

    Cryptographic verification and scheme distribution stay inside the
    external tools; this class only drives them and parses results.
    """

    def __init__(
        self,
        irma_command: str | None = None,
        verify_command: str | None = None,
        scheme_urls: list[str] | None = None,
        timeout_seconds: float | None = None,
    ) -> None:
        """
        Initialize the provider.

        Args:
            irma_command: irmago CLI executable (default from settings)
            verify_command: Verification helper executable (default from settings)
            scheme_urls: Default scheme URLs (default from settings)
            timeout_seconds: Subprocess timeout (default from settings)
        """
        self.irma_command = irma_command or settings.trust.irma_command
        self.verify_command = verify_command or settings.trust.verify_command
        self.scheme_urls = scheme_urls or settings.trust.default_scheme_urls_list
        self.timeout_seconds = timeout_seconds or settings.trust.command_timeout_seconds

    @property
    def mode(self) -> TrustMode:
        return TrustMode.IRMA

    async def _run(
        self,
        args: list[str],
        input_text: str | None = None,
    ) -> subprocess.CompletedProcess[str]:
        return await asyncio.to_thread(
            subprocess.run,
            args,
            input=input_text,
            capture_output=True,
            text=True,
            timeout=self.timeout_seconds,
        )

    # =========================================================================
    # Verification
    # =========================================================================

    async def verify(
        self,
        message: SignedMessage,
        configuration: TrustConfiguration,
        policy: Any | None = None,
    ) -> VerificationOutcome:
        """Verify a message with the helper against the snapshot's folder."""
        args = [self.verify_command, "--schemes", str(configuration.path)]
        if policy is not None:
            args += ["--request", json.dumps(policy)]

        start_time = time.perf_counter()
        try:
            result = await self._run(args, input_text=message.to_wire())
        except (OSError, subprocess.TimeoutExpired) as e:
            return VerificationOutcome.error(f"Verifier could not run: {e}")

        verification_time_ms = int((time.perf_counter() - start_time) * 1000)

        if result.returncode != 0:
            return VerificationOutcome.error(
                f"Verifier exited with {result.returncode}: {result.stderr.strip()}"
            )

        outcome = parse_verification_output(result.stdout)

        logger.debug(
            "irma_signature_checked",
            outcome=outcome.kind.value,
            generation=configuration.generation,
            verification_time_ms=verification_time_ms,
        )

        return outcome

    # =========================================================================
    # Configuration lifecycle
    # =========================================================================

    async def load_configuration(self, path: Path) -> TrustConfiguration:
        """Parse the newest good scheme material at a storage location."""
        return await asyncio.to_thread(load_latest_configuration, path)

    async def download_default_schemes(self, path: Path) -> None:
        """Download each default scheme with `irma scheme download`."""
        for url in self.scheme_urls:
            args = [self.irma_command, "scheme", "download", str(path), url]
            try:
                result = await self._run(args)
            except (OSError, subprocess.TimeoutExpired) as e:
                raise SchemeDownloadError(f"Failed to download {url}: {e}") from e

            if result.returncode != 0:
                raise SchemeDownloadError(
                    f"Failed to download {url}: {result.stderr.strip()}"
                )

            logger.info("irma_scheme_downloaded", url=url, path=str(path))

    async def refresh_configuration(
        self,
        current: TrustConfiguration,
    ) -> TrustConfiguration:
        """
        Update a copy of the current scheme folder and parse it.

        The copy becomes the next generation directory and is recorded as
        current once it parses; generations older than the one being
        replaced are removed afterwards.
        """
        generation = current.generation + 1
        root = storage_root(current.path)
        staging = root / GENERATIONS_DIR / str(generation)

        try:
            await asyncio.to_thread(self._stage, current.path, staging)
            folders = await asyncio.to_thread(scheme_folders, staging)
        except OSError as e:
            raise SchemeUpdateError(f"Failed to stage schemes: {e}") from e

        try:
            if not folders:
                raise SchemeUpdateError(f"No schemes to update in {staging}")

            # irmago takes one scheme folder per argument
            args = [self.irma_command, "scheme", "update", *(str(f) for f in folders)]
            result = await self._run(args)
            if result.returncode != 0:
                raise SchemeUpdateError(f"Scheme update failed: {result.stderr.strip()}")

            configuration = await asyncio.to_thread(parse_scheme_folder, staging, generation)
            if configuration.is_empty:
                raise SchemeUpdateError(f"No schemes left after update in {staging}")

            await asyncio.to_thread(write_current_generation, root, generation)
        except (OSError, subprocess.TimeoutExpired, ConfigurationError) as e:
            await asyncio.to_thread(shutil.rmtree, staging, True)
            if isinstance(e, SchemeUpdateError):
                raise
            raise SchemeUpdateError(f"Scheme update failed: {e}") from e

        await asyncio.to_thread(self._prune, root, keep={generation, current.generation})
        return configuration

    @staticmethod
    def _stage(source: Path, staging: Path) -> None:
        if staging.exists():
            shutil.rmtree(staging)
        staging.parent.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, staging, ignore=shutil.ignore_patterns(GENERATIONS_DIR))

    @staticmethod
    def _prune(root: Path, keep: set[int]) -> None:
        generations = root / GENERATIONS_DIR
        if not generations.is_dir():
            return
        for entry in generations.iterdir():
            if entry.is_dir() and entry.name not in {str(g) for g in keep}:
                shutil.rmtree(entry, ignore_errors=True)
                logger.debug("irma_generation_pruned", path=str(entry))
