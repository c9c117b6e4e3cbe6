"""
Sync engine -- saved connections, known revisions, push and pull.

The storage layer knows how to save safely if you tell it which
revision you started from. This module remembers that revision for
you between runs.

    vaultdav pull work ./db.kdbx   ->  GET, remember Last-Modified
    vaultdav push work ./db.kdbx   ->  save against the remembered revision
"""

from __future__ import annotations

import json
import logging
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

import yaml

from . import VAULTDAV_HOME
from .credentials import StoredCredentials, file_opts_to_store_opts, store_opts_to_file_opts
from .models import AuditEntry, ConnectionProfile, ConnectionState, DavConfig, SyncState
from .storage.classifier import NotFoundError, RevisionConflictError, StorageError
from .storage.models import Credentials, LoadResult, SaveOutcome, SaveStatus, StatResult
from .storage.transport import RequestsTransport, Transport
from .storage.webdav import WebDavStorage

logger = logging.getLogger("vaultdav.engine")

AUDIT_LOG_NAME = "audit.log"


class UnknownConnectionError(KeyError):
    """Raised when a connection name is not in config.yaml."""


class ConnectionConfigError(ValueError):
    """Raised when a saved connection cannot be used as configured."""


class VaultSync:
    """Keeps vault files in step with their WebDAV copies.

    Args:
        home: Config directory. Defaults to ``$VAULTDAV_HOME``.
        transport: HTTP transport override (tests, custom sessions).
    """

    def __init__(
        self,
        home: Optional[Path] = None,
        transport: Optional[Transport] = None,
    ):
        self.home = Path(home or VAULTDAV_HOME).expanduser()
        self.home.mkdir(parents=True, exist_ok=True)

        self.config = self._load_config()
        self.state = self._load_state()
        self.storage = WebDavStorage(
            transport or RequestsTransport(timeout=self.config.timeout),
            base_url=self.config.base_url,
        )

    def _load_config(self) -> DavConfig:
        """Load configuration from disk."""
        config_file = self.home / "config.yaml"
        if config_file.exists():
            try:
                data = yaml.safe_load(config_file.read_text(encoding="utf-8")) or {}
                return DavConfig(**data)
            except (yaml.YAMLError, ValueError) as exc:
                logger.warning("Failed to load config: %s", exc)
        return DavConfig()

    def _load_state(self) -> SyncState:
        """Load state from disk."""
        state_file = self.home / "state.json"
        if state_file.exists():
            try:
                data = json.loads(state_file.read_text(encoding="utf-8"))
                return SyncState(**data)
            except (json.JSONDecodeError, ValueError) as exc:
                logger.warning("Failed to load state: %s", exc)
        return SyncState()

    def _save_state(self) -> None:
        state_file = self.home / "state.json"
        state_file.write_text(self.state.model_dump_json(indent=2), encoding="utf-8")

    def save_config(self) -> None:
        """Persist configuration to disk."""
        config_file = self.home / "config.yaml"
        data = self.config.model_dump(mode="json")
        config_file.write_text(
            yaml.dump(data, default_flow_style=False), encoding="utf-8"
        )

    def connect(
        self,
        name: str,
        path: str,
        user: Optional[str] = None,
        password: Optional[str] = None,
        file_id: Optional[str] = None,
    ) -> ConnectionProfile:
        """Save a connection. The password is stored obfuscated.

        Args:
            name: Connection name used by push/pull.
            path: URL of the vault file.
            user: WebDAV user.
            password: WebDAV password.
            file_id: Vault uuid used as the obfuscation key. A fresh
                uuid4 is generated when omitted.

        Returns:
            The stored profile.

        Raises:
            ConnectionConfigError: If ``path`` is relative and no
                ``base_url`` is configured.
        """
        file_id = file_id or str(uuid.uuid4())
        self._check_path(path)
        stored = file_opts_to_store_opts(
            Credentials(user=user or None, password=password or None), file_id
        )
        profile = ConnectionProfile(
            path=path, user=stored.user, encpass=stored.encpass, file_id=file_id,
        )
        self.config.connections[name] = profile
        self.save_config()
        logger.info("Saved connection %s -> %s", name, path)
        return profile

    def profile(self, name: str) -> ConnectionProfile:
        try:
            profile = self.config.connections[name]
        except KeyError:
            raise UnknownConnectionError(name) from None
        self._check_path(profile.path)
        return profile

    def _check_path(self, path: str) -> None:
        try:
            self.storage.resolve(path)
        except ValueError:
            raise ConnectionConfigError(
                f"{path} is relative; set base_url in config.yaml or use a full URL"
            ) from None

    def credentials(self, name: str) -> Credentials:
        """Plaintext credentials for a saved connection."""
        profile = self.profile(name)
        try:
            return store_opts_to_file_opts(
                StoredCredentials(user=profile.user, encpass=profile.encpass),
                profile.file_id,
            )
        except ValueError as exc:
            # binascii.Error and UnicodeDecodeError are both ValueErrors
            raise ConnectionConfigError(
                f"Stored password for {name} cannot be decoded: {exc}"
            ) from exc

    def _conn_state(self, name: str) -> ConnectionState:
        return self.state.connections.setdefault(name, ConnectionState())

    def stat(self, name: str) -> StatResult:
        """Current remote revision of a connection's file."""
        profile = self.profile(name)
        return self.storage.stat(profile.path, self.credentials(name))

    def pull(self, name: str, dest: Path) -> LoadResult:
        """Download the remote file to ``dest`` and remember its revision.

        Raises:
            StorageError: If the download failed. ``dest`` is untouched.
        """
        profile = self.profile(name)
        conn = self._conn_state(name)
        try:
            result = self.storage.load(profile.path, self.credentials(name))
        except StorageError as exc:
            conn.last_error = str(exc)
            self._save_state()
            self._audit("PULL_FAILED", f"{profile.path}: {exc}", name)
            raise

        dest = Path(dest).expanduser()
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_bytes(result.body)

        conn.last_revision = result.revision
        conn.last_pull = datetime.now(timezone.utc)
        conn.pull_count += 1
        conn.last_error = None
        self._save_state()
        self._audit("PULL", f"{profile.path} rev {result.revision}", name)
        return result

    def push(self, name: str, src: Path, force: bool = False) -> SaveOutcome:
        """Upload ``src`` unless the remote file changed since the last pull.

        Args:
            name: Connection name.
            src: Local vault file.
            force: Overwrite regardless of the remote revision.

        Returns:
            SaveOutcome. A conflict means: pull, merge, push again.

        Raises:
            ConnectionConfigError: If the saved connection is unusable.
        """
        profile = self.profile(name)
        conn = self._conn_state(name)
        expected = None if force else conn.last_revision
        body = Path(src).expanduser().read_bytes()

        try:
            if expected is None and not force:
                self._ensure_absent(profile.path, name)
            stat = self.storage.save(
                profile.path,
                body,
                credentials=self.credentials(name),
                expected_revision=expected,
            )
        except RevisionConflictError as exc:
            conn.conflict_count += 1
            conn.last_error = str(exc)
            self._save_state()
            self._audit(
                "PUSH_CONFLICT",
                f"{profile.path}: expected {expected}, found {exc.observed_revision}",
                name,
            )
            return SaveOutcome(
                status=SaveStatus.CONFLICT,
                revision=exc.observed_revision,
                error_kind=exc.kind.value,
                error=str(exc),
            )
        except StorageError as exc:
            conn.last_error = str(exc)
            self._save_state()
            self._audit("PUSH_FAILED", f"{profile.path}: {exc}", name)
            return SaveOutcome(
                status=SaveStatus.FAILED,
                error_kind=exc.kind.value,
                error=str(exc),
            )

        conn.last_revision = stat.revision
        conn.last_push = datetime.now(timezone.utc)
        conn.push_count += 1
        conn.last_error = None
        self._save_state()
        self._audit("PUSH", f"{profile.path} rev {stat.revision}", name)
        return SaveOutcome(status=SaveStatus.SAVED, revision=stat.revision)

    def _ensure_absent(self, path: str, name: str) -> None:
        """Never pulled: only allow the push if it creates the file.

        This narrows the window, it does not close it. The save that
        follows runs without an expected revision, so a file another
        client creates after this check is overwritten and both
        pushes report SAVED.
        """
        try:
            existing = self.storage.stat(path, self.credentials(name))
        except NotFoundError:
            return
        raise RevisionConflictError(
            f"{path}: exists but was never pulled",
            path,
            observed_revision=existing.revision,
        )

    def status(self) -> dict:
        """Connections with their last known state.

        Returns:
            Dict keyed by connection name.
        """
        result = {}
        for name, profile in self.config.connections.items():
            conn = self.state.connections.get(name, ConnectionState())
            result[name] = {
                "path": profile.path,
                "user": profile.user,
                **conn.model_dump(mode="json"),
            }
        return result

    def _audit(self, event_type: str, detail: str, connection: str) -> None:
        """Append one JSON line to the audit log."""
        entry = AuditEntry(event_type=event_type, detail=detail, connection=connection)
        with (self.home / AUDIT_LOG_NAME).open("a", encoding="utf-8") as f:
            f.write(entry.model_dump_json() + "\n")
