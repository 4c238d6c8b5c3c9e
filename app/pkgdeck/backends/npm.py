"""npm backend for globally installed Node.js packages."""

import logging
import shlex
from typing import Any

from pkgdeck.backends.base import SEARCH_LIMIT, Backend, BackendCommandError, CommandFailedError
from pkgdeck.backends.parsing import load_json
from pkgdeck.backends.pkexec import SUGGEST_PREFIX
from pkgdeck.backends.providers import PROBES
from pkgdeck.models.package import Package, PackageSource, PackageStatus

logger = logging.getLogger(__name__)

# npm outdated exits 1 when at least one package is outdated
_OUTDATED_FOUND = 1

_PERMISSION_MARKERS = ("eacces", "permission denied", "eperm")
_NOT_FOUND_MARKERS = ("e404", "404 not found", "is not in this registry")


def parse_npm_list(text: str) -> list[Package]:
    """Parse ``npm list -g --depth=0 --json`` output."""
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    dependencies: dict[str, Any] = data.get("dependencies") or {}
    return [
        Package(
            name=name,
            version=(info or {}).get("version", "") if isinstance(info, dict) else "",
            source=PackageSource.NPM,
        )
        for name, info in dependencies.items()
    ]


def parse_npm_outdated(text: str) -> list[Package]:
    """Parse ``npm outdated -g --json`` output.

    Entries without a ``latest`` version are skipped.
    """
    data = load_json(text)
    if not isinstance(data, dict):
        return []
    packages: list[Package] = []
    for name, info in data.items():
        if not isinstance(info, dict) or not info.get("latest"):
            continue
        packages.append(
            Package(
                name=name,
                version=info.get("current") or "",
                source=PackageSource.NPM,
                status=PackageStatus.UPDATE_AVAILABLE,
                available_version=info["latest"],
            )
        )
    return packages


def parse_npm_search(text: str) -> list[Package]:
    """Parse ``npm search --json`` output."""
    data = load_json(text)
    if not isinstance(data, list):
        return []
    packages: list[Package] = []
    for item in data:
        if not isinstance(item, dict) or not item.get("name"):
            continue
        packages.append(
            Package(
                name=item["name"],
                version=item.get("version") or "",
                source=PackageSource.NPM,
                status=PackageStatus.NOT_INSTALLED,
                description=item.get("description") or "",
            )
        )
        if len(packages) >= SEARCH_LIMIT:
            break
    return packages


def parse_npm_versions(text: str) -> list[str]:
    """Parse ``npm view NAME versions --json`` output, newest first."""
    data = load_json(text)
    if isinstance(data, str):
        return [data]
    if isinstance(data, list):
        return [str(version) for version in reversed(data)]
    return []


class NpmBackend(Backend):
    """Backend for global npm packages."""

    source = PackageSource.NPM
    probe = PROBES[PackageSource.NPM]

    def list_installed(self) -> list[Package]:
        result = self._run(["npm", "list", "-g", "--depth=0", "--json"], "Failed to list npm packages")
        # npm list exits non-zero on peer dependency problems but still prints JSON
        return parse_npm_list(result.stdout)

    def check_updates(self) -> list[Package]:
        result = self._run(["npm", "outdated", "-g", "--json"], "Failed to check npm updates")
        if result.returncode not in (0, _OUTDATED_FOUND):
            logger.debug("npm outdated exited with %d", result.returncode)
            return []
        return parse_npm_outdated(result.stdout)

    def install(self, name: str) -> None:
        self._npm(["install", "-g", name], f"Failed to install npm package '{name}'")

    def remove(self, name: str) -> None:
        self._npm(["uninstall", "-g", name], f"Failed to remove npm package '{name}'")

    def update(self, name: str) -> None:
        # npm update -g ignores the requested package in some versions
        self._npm(["install", "-g", f"{name}@latest"], f"Failed to update npm package '{name}'")

    def downgrade_to(self, name: str, version: str) -> None:
        spec = f"{name}@{version}"
        self._npm(["install", "-g", spec], f"Failed to install {spec}")

    def available_downgrade_versions(self, name: str) -> list[str]:
        result = self._run_quiet(["npm", "view", name, "versions", "--json"])
        return parse_npm_versions(result.stdout) if result else []

    def search(self, query: str) -> list[Package]:
        result = self._run_quiet(["npm", "search", "--json", "--", query])
        return parse_npm_search(result.stdout) if result else []

    def _npm(self, args: list[str], context: str) -> None:
        """Run a mutating npm command, translating common failures.

        Raises:
            BackendCommandError: With a sudo suggestion on permission errors,
                or a readable message for unknown packages.
            CommandFailedError: For any other non-zero exit.
        """
        command = ["npm", *args]
        logger.info("Running %s", shlex.join(command))
        result = self._run(command, context)
        if result.success:
            return

        lowered = result.stderr.lower()
        if any(marker in lowered for marker in _PERMISSION_MARKERS):
            suggestion = shlex.join(["sudo", *command])
            msg = f"{context}.\n\n{SUGGEST_PREFIX} {suggestion}\n"
            raise BackendCommandError(msg)
        if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
            msg = f"{context}: package not found on the npm registry. Check the name and try again."
            raise BackendCommandError(msg)

        raise CommandFailedError(shlex.join(command), result.returncode, result.stderr.strip())
