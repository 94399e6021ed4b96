"""
Release publishing.

Every deploy builds a new timestamped release next to the previous ones:

    <deploy_root>/
        repo/                  bare mirror of the git repository
        releases/<timestamp>/  exported tree of the deployed branch
        shared/                files and dirs that survive across releases
        current -> releases/<timestamp>

Gems are bundled into shared/bundle and assets are precompiled in the new
release before it goes live.
"""
import logging
import posixpath
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence

from devile_deploy import tasks
from devile_deploy.config.settings import Settings
from devile_deploy.connections import run_remote
from devile_deploy.exceptions import DeployError
from devile_deploy.utils.decorators import log_deploy_step

logger = logging.getLogger(__name__)

RELEASE_TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"

Hook = Callable[[Sequence], None]


class ReleasePublisher:
    """Publish a branch of the application repository to the app servers."""

    def __init__(self,
                 settings: Settings,
                 branch: str,
                 rails_env: str = "production",
                 after_publishing: Optional[List[Hook]] = None,
                 clock: Callable[[], datetime] = None):
        self.settings = settings
        self.branch = branch
        self.rails_env = rails_env
        self.clock = clock or (lambda: datetime.now(timezone.utc))
        if after_publishing is None:
            after_publishing = [lambda connections: tasks.after_publishing(connections, settings)]
        self.after_publishing_hooks = list(after_publishing)

    def release_path(self, release_name: str) -> str:
        return f"{self.settings.releases_path}/{release_name}"

    @log_deploy_step
    def deploy(self, connections: Sequence) -> str:
        """Run the full deploy flow and return the new release path."""
        release_path = self.release_path(self.clock().strftime(RELEASE_TIMESTAMP_FORMAT))
        logger.info(f"Deploying {self.settings.application}@{self.branch} to {release_path}")

        self.check(connections)
        self.update_code(connections, release_path)
        self.symlink_shared(connections, release_path)
        self.build(connections, release_path)
        self.publish(connections, release_path)

        for hook in self.after_publishing_hooks:
            hook(connections)

        self.cleanup(connections)
        logger.info(f"✅ Deployed {self.settings.application}@{self.branch}")
        return release_path

    def check(self, connections: Sequence) -> None:
        """Create the directory layout and verify linked files exist."""
        shared = self.settings.shared_path
        linked_dirs = [f"{shared}/{path}" for path in self.settings.linked_dirs]
        linked_file_parents = sorted({
            posixpath.dirname(f"{shared}/{path}") for path in self.settings.linked_files
        })

        for connection in connections:
            run_remote(connection, f"mkdir -p {shared} {self.settings.releases_path}")
            if linked_dirs or linked_file_parents:
                run_remote(connection, "mkdir -p " + " ".join(linked_dirs + linked_file_parents))

            for path in self.settings.linked_files:
                linked_file = f"{shared}/{path}"
                if run_remote(connection, f"test -f {linked_file}", check=False).failed:
                    raise DeployError(f"Linked file {linked_file} does not exist on {connection.host}")

    def update_code(self, connections: Sequence, release_path: str) -> None:
        """Refresh the repository mirror and export the branch into the release."""
        repo = self.settings.repo_path
        for connection in connections:
            if run_remote(connection, f"test -f {repo}/HEAD", check=False).failed:
                logger.info(f"[{connection.host}] cloning {self.settings.repo_url}")
                run_remote(connection, f"git clone --mirror {self.settings.repo_url} {repo}")
            else:
                run_remote(
                    connection,
                    f"cd {repo} && git remote set-url origin {self.settings.repo_url} && git remote update --prune",
                )

            run_remote(connection, f"mkdir -p {release_path}")
            run_remote(connection, f"cd {repo} && git archive {self.branch} | tar -x -f - -C {release_path}")
            run_remote(connection, f"cd {repo} && git rev-list --max-count=1 {self.branch} > {release_path}/REVISION")

    def symlink_shared(self, connections: Sequence, release_path: str) -> None:
        """Point linked files and dirs of the release at shared/."""
        shared = self.settings.shared_path
        links = [(path, "-rf") for path in self.settings.linked_dirs]
        links += [(path, "-f") for path in self.settings.linked_files]

        for connection in connections:
            for path, rm_flags in links:
                target = f"{release_path}/{path}"
                run_remote(
                    connection,
                    f"mkdir -p {posixpath.dirname(target)} && rm {rm_flags} {target} && ln -s {shared}/{path} {target}",
                )

    def ruby_command(self, command: str) -> str:
        """Run ``command`` through rbenv exec when it starts with a mapped binary."""
        if command.split(" ", 1)[0] not in self.settings.rbenv_map_bins:
            return command
        version = self.settings.rbenv_ruby or "$(cat .ruby-version)"
        return f"RBENV_ROOT={self.settings.rbenv_path} RBENV_VERSION={version} /usr/bin/rbenv exec {command}"

    def in_release(self, release_path: str, command: str, env: Optional[Dict[str, str]] = None) -> str:
        """Build a command line running inside ``release_path`` with the remote PATH."""
        assignments = "".join(f"{name}={value} " for name, value in (env or {}).items())
        return (
            f'cd {release_path} && export PATH="{self.settings.default_path}"'
            f" && {assignments}{self.ruby_command(command)}"
        )

    def build(self, connections: Sequence, release_path: str) -> None:
        """Bundle gems into shared/bundle and precompile assets for ``rails_env``."""
        bundle_steps = [
            f"bundle config set --local path {self.settings.shared_path}/bundle",
            f"bundle config set --local without '{self.settings.bundle_without}'",
            f"bundle install --jobs {self.settings.bundle_jobs} --quiet",
        ]
        precompile = self.in_release(
            release_path, "bundle exec rake assets:precompile", env={"RAILS_ENV": self.rails_env}
        )

        for connection in connections:
            logger.info(f"[{connection.host}] installing gems")
            for step in bundle_steps:
                run_remote(connection, self.in_release(release_path, step))

            logger.info(f"[{connection.host}] precompiling assets for {self.rails_env}")
            run_remote(connection, precompile)

    def publish(self, connections: Sequence, release_path: str) -> None:
        """Switch the current symlink to the release."""
        tmp_current = f"{self.settings.releases_path}/current"
        for connection in connections:
            run_remote(
                connection,
                f"ln -sfn {release_path} {tmp_current} && mv -T {tmp_current} {self.settings.current_path}",
            )
            logger.info(f"[{connection.host}] current -> {release_path}")

    def cleanup(self, connections: Sequence) -> None:
        """Remove all but the newest ``keep_releases`` releases."""
        keep = self.settings.keep_releases
        for connection in connections:
            listing = run_remote(connection, f"ls -1 {self.settings.releases_path}")
            releases = sorted(name for name in listing.stdout.split() if name.isdigit())
            expired = releases[:-keep] if len(releases) > keep else []
            if not expired:
                continue

            logger.info(f"[{connection.host}] removing {len(expired)} old release(s)")
            run_remote(connection, "rm -rf " + " ".join(self.release_path(name) for name in expired))
