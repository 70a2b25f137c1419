"""Per-registry git clone cache.

The cache directory either does not exist or holds a complete clone checked
out at the requested ref. Clones are made into a sibling temporary directory
and renamed into place only once the checkout succeeded.

Ref kinds:
    latest / ""  -> remote default branch, fast-forwarded by refresh()
    <branch>     -> local tracking branch, fast-forwarded by refresh()
    <tag>        -> detached at the tag's commit, refresh() is a no-op
    <40-hex SHA> -> detached at exactly that commit, refresh() is a no-op
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
import tempfile
from enum import Enum
from pathlib import Path

from positive_vibes.core.config import LATEST_REF
from positive_vibes.errors import CloneFailedError, RefUnknownError, RegistryError

logger = logging.getLogger(__name__)

SHA_RE = re.compile(r"^[0-9a-fA-F]{40}$")

# Records the ref a cache was checked out for, inside the clone's own config.
REF_CONFIG_KEY = "positive-vibes.ref"

GIT_TIMEOUT = 300


class RefKind(Enum):
    LATEST = "latest"
    BRANCH = "branch"
    TAG = "tag"
    SHA = "sha"

    @property
    def is_pinned(self) -> bool:
        return self in (RefKind.TAG, RefKind.SHA)


class GitCommandError(RegistryError):
    """Raised when a git subprocess exits non-zero."""

    def __init__(self, args: list[str], returncode: int, stderr: str):
        self.args_list = args
        self.returncode = returncode
        self.stderr = stderr
        super().__init__(f"git {' '.join(args)} failed ({returncode}): {stderr.strip()}")


def run_git(args: list[str], cwd: Path | None = None) -> str:
    """Run git with *args* and return stripped stdout.

    Raises:
        GitCommandError: On a non-zero exit status.
        RegistryError: If the git executable cannot be started.
    """
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=str(cwd) if cwd else None,
            capture_output=True,
            text=True,
            env=env,
            timeout=GIT_TIMEOUT,
        )
    except (OSError, subprocess.TimeoutExpired) as exc:
        raise RegistryError(f"could not run git: {exc}") from exc
    if result.returncode != 0:
        raise GitCommandError(args, result.returncode, result.stderr)
    return result.stdout.strip()


def normalize_ref(ref: str | None) -> str:
    ref = (ref or "").strip()
    return "" if ref == LATEST_REF else ref


class GitCache:
    """A git working tree for one registry, cloned lazily from ``url``."""

    def __init__(self, registry_name: str, url: str, path: Path, ref: str = "") -> None:
        self.registry_name = registry_name
        self.url = url
        self.path = Path(path)
        self.ref = normalize_ref(ref)
        self._ready = False

    def __repr__(self) -> str:
        return f"GitCache(registry={self.registry_name!r}, path={str(self.path)!r}, ref={self.ref!r})"

    # ------------------------------------------------------------------
    # State queries
    # ------------------------------------------------------------------

    def is_valid(self) -> bool:
        """Return True if ``path`` holds a usable git working tree."""
        if not (self.path / ".git").exists():
            return False
        try:
            top = run_git(["rev-parse", "--show-toplevel"], cwd=self.path)
        except RegistryError:
            return False
        return Path(top).resolve() == self.path.resolve()

    def head(self) -> str:
        """Return the commit hash currently checked out."""
        return run_git(["rev-parse", "HEAD"], cwd=self.path)

    def checked_out_ref(self) -> str | None:
        try:
            return run_git(["config", "--local", "--get", REF_CONFIG_KEY], cwd=self.path)
        except GitCommandError:
            return None

    def classify_ref(self, workdir: Path | None = None) -> RefKind:
        """Decide whether ``ref`` names the default branch, a branch, a tag or a SHA.

        Raises:
            RefUnknownError: If the ref does not exist in the clone.
        """
        workdir = workdir or self.path
        if not self.ref:
            return RefKind.LATEST
        if SHA_RE.match(self.ref):
            if self._has_object(workdir, f"{self.ref}^{{commit}}"):
                return RefKind.SHA
            raise RefUnknownError(self.ref, self.registry_name)
        if self._has_ref(workdir, f"refs/remotes/origin/{self.ref}"):
            return RefKind.BRANCH
        if self._has_ref(workdir, f"refs/tags/{self.ref}"):
            return RefKind.TAG
        raise RefUnknownError(self.ref, self.registry_name)

    @staticmethod
    def _has_ref(workdir: Path, full_ref: str) -> bool:
        try:
            run_git(["show-ref", "--verify", "--quiet", full_ref], cwd=workdir)
        except GitCommandError:
            return False
        return True

    @staticmethod
    def _has_object(workdir: Path, spec: str) -> bool:
        try:
            run_git(["cat-file", "-e", spec], cwd=workdir)
        except GitCommandError:
            return False
        return True

    # ------------------------------------------------------------------
    # Materialization
    # ------------------------------------------------------------------

    def ensure(self) -> Path:
        """Make sure the clone exists and is at ``ref``; return its path.

        An existing valid clone is reused without touching the network. If a
        fresh clone fails while a valid cache exists, the cache is used.

        Raises:
            CloneFailedError: If cloning failed and no usable cache exists.
            RefUnknownError: If ``ref`` does not exist upstream.
        """
        if self._ready:
            return self.path

        if self.is_valid():
            logger.debug("Using cached clone for %s at %s", self.registry_name, self.path)
            self._align_existing()
        else:
            self._clone()

        self._ready = True
        return self.path

    def _clone(self) -> None:
        if self.path.exists():
            logger.warning("Discarding invalid cache directory %s", self.path)
            shutil.rmtree(self.path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

        staging = Path(tempfile.mkdtemp(prefix=f".{self.path.name}.", dir=self.path.parent))
        try:
            clone_dir = staging / "clone"
            try:
                run_git(["clone", "--quiet", self.url, str(clone_dir)])
            except RegistryError as exc:
                # Another process may have populated the cache meanwhile.
                if self.is_valid():
                    logger.warning(
                        "Clone of %s failed, using cached copy: %s", self.registry_name, exc
                    )
                    self._align_existing()
                    return
                detail = exc.stderr.strip() if isinstance(exc, GitCommandError) else str(exc)
                raise CloneFailedError(self.registry_name, self.url, self.ref, detail) from exc

            self._checkout(clone_dir)
            os.replace(clone_dir, self.path)
            logger.info("Cloned registry %s into %s", self.registry_name, self.path)
        finally:
            shutil.rmtree(staging, ignore_errors=True)

    def _checkout(self, workdir: Path) -> RefKind:
        kind = self.classify_ref(workdir)
        if kind is RefKind.BRANCH:
            run_git(["checkout", "--quiet", "-B", self.ref, f"origin/{self.ref}"], cwd=workdir)
            run_git(["branch", "--quiet", f"--set-upstream-to=origin/{self.ref}"], cwd=workdir)
        elif kind is RefKind.TAG:
            run_git(["checkout", "--quiet", "--detach", f"refs/tags/{self.ref}"], cwd=workdir)
        elif kind is RefKind.SHA:
            run_git(["checkout", "--quiet", "--detach", self.ref], cwd=workdir)
        run_git(["config", "--local", REF_CONFIG_KEY, self.ref or LATEST_REF], cwd=workdir)
        return kind

    def _align_existing(self) -> None:
        """Switch an existing clone to ``ref`` when it was made for another one."""
        recorded = normalize_ref(self.checked_out_ref())
        if recorded == self.ref:
            return

        logger.info(
            "Cache for %s was checked out at '%s', switching to '%s'",
            self.registry_name,
            recorded or LATEST_REF,
            self.ref or LATEST_REF,
        )
        if not self.ref:
            default = self._default_branch()
            run_git(["checkout", "--quiet", "-B", default, f"origin/{default}"], cwd=self.path)
            run_git(["config", "--local", REF_CONFIG_KEY, LATEST_REF], cwd=self.path)
            return

        try:
            self._checkout(self.path)
        except RefUnknownError:
            # The ref may be newer than the cache; fetch once and retry.
            try:
                self._fetch()
            except GitCommandError as exc:
                logger.warning("Could not fetch %s: %s", self.registry_name, exc)
                raise RefUnknownError(self.ref, self.registry_name) from exc
            self._checkout(self.path)

    def _default_branch(self) -> str:
        try:
            head = run_git(["symbolic-ref", "--short", "refs/remotes/origin/HEAD"], cwd=self.path)
        except GitCommandError:
            return run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd=self.path)
        return head.split("/", 1)[1] if "/" in head else head

    def _fetch(self) -> None:
        run_git(["fetch", "--quiet", "--tags", "origin"], cwd=self.path)

    def refresh(self) -> bool:
        """Fetch and fast-forward branch-tracking caches.

        Returns True if HEAD moved. Tag- and SHA-pinned caches are left at
        their commit.

        Raises:
            RegistryError: If fetching or fast-forwarding fails.
        """
        self.ensure()
        kind = self.classify_ref()
        if kind.is_pinned:
            logger.debug("Registry %s is pinned to %s; refresh skipped", self.registry_name, self.ref)
            return False

        before = self.head()
        try:
            self._fetch()
            run_git(["merge", "--ff-only", "--quiet", "@{upstream}"], cwd=self.path)
        except GitCommandError as exc:
            raise RegistryError(
                f"failed to refresh registry '{self.registry_name}': {exc.stderr.strip()}",
                registry=self.registry_name,
            ) from exc
        after = self.head()
        if before != after:
            logger.info("Registry %s advanced %s -> %s", self.registry_name, before[:8], after[:8])
        return before != after
