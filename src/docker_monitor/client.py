"""Adapter over the Docker SDK used by the monitor and the one-shot commands."""

import io
import logging
import os
import platform
import tarfile
from collections.abc import Iterable, Iterator

import docker
from docker.errors import DockerException, NotFound
from requests.exceptions import RequestException

from docker_monitor.errors import (
    AdapterConnectionError,
    ContainerNotFound,
    LifecycleOperationError,
    StatsFetchError,
)
from docker_monitor.models import ContainerRef, ImageRef, RawStats
from docker_monitor.stats import parse_raw_stats

logger = logging.getLogger(__name__)

# Keeps containers started by `run` alive when the image has no long-running command
KEEPALIVE_COMMAND = ["/bin/sh", "-c", "while :; do sleep 1; done"]

_ARCH_ALIASES = {
    "x86_64": "amd64",
    "amd64": "amd64",
    "aarch64": "arm64",
    "arm64": "arm64",
}


def match_container(containers: Iterable[ContainerRef], specifier: str) -> ContainerRef:
    """
    Find the container a user-supplied specifier refers to.

    A specifier matches a container when it is a prefix of the container id
    (the full id included), or equals one of its names with or without the
    leading '/'. The first match in listing order wins.

    Raises:
        ContainerNotFound: If nothing matches or the specifier is empty.
    """
    if specifier:
        for container in containers:
            if container.id.startswith(specifier):
                return container
            for name in container.names:
                if name == specifier or name == "/" + specifier:
                    return container
    raise ContainerNotFound(f"container not found: {specifier}")


def split_repo_tag(repo_tag: str) -> tuple[str, str]:
    """Split ``repo:tag`` into its parts, defaulting the tag to ``latest``."""
    if repo_tag.endswith(":"):
        return repo_tag[:-1], "latest"
    repository, sep, tag = repo_tag.rpartition(":")
    # A colon inside a registry host:port is not a tag separator
    if not sep or "/" in tag:
        return repo_tag, "latest"
    return repository, tag


def docker_platform() -> str:
    """Platform string for containers created by `run`, e.g. ``linux/amd64``."""
    machine = platform.machine().lower()
    return f"linux/{_ARCH_ALIASES.get(machine, machine)}"


def tar_directory(dockerfile: str, context_dir: str = ".") -> io.BytesIO:
    """
    Archive a build context in memory.

    The Dockerfile is stored at the archive root as ``Dockerfile`` whatever its
    path on disk, followed by every regular file under ``context_dir``.
    """
    buffer = io.BytesIO()
    context_dir = os.path.abspath(context_dir)
    dockerfile = os.path.abspath(dockerfile)

    with tarfile.open(fileobj=buffer, mode="w") as archive:
        archive.add(dockerfile, arcname="Dockerfile")
        for root, dirs, files in os.walk(context_dir):
            dirs.sort()
            for filename in sorted(files):
                path = os.path.join(root, filename)
                if path == dockerfile or not os.path.isfile(path):
                    continue
                archive.add(path, arcname=os.path.relpath(path, context_dir))

    buffer.seek(0)
    return buffer


class RuntimeClient:
    """
    Thin wrapper around a ``docker.DockerClient``.

    Translates Engine API results into docker-monitor models and SDK errors
    into the docker-monitor error taxonomy. The wrapped client is shared by
    all stats workers of a cycle; the SDK's connection pool is thread-safe.
    """

    def __init__(self, docker_client: docker.DockerClient) -> None:
        self._docker = docker_client

    @classmethod
    def connect(cls) -> "RuntimeClient":
        """
        Connect using the standard Docker environment (DOCKER_HOST etc.).

        Raises:
            AdapterConnectionError: If the daemon cannot be reached.
        """
        try:
            docker_client = docker.from_env()
            docker_client.ping()
        except (DockerException, RequestException) as exc:
            raise AdapterConnectionError(f"cannot connect to the Docker daemon: {exc}") from exc
        return cls(docker_client)

    def close(self) -> None:
        self._docker.close()

    # Read operations used by the monitor loop

    def list_containers(self, include_stopped: bool = False) -> list[ContainerRef]:
        """List containers, running ones only unless include_stopped is set."""
        try:
            entries = self._docker.api.containers(all=include_stopped)
        except (DockerException, RequestException) as exc:
            raise StatsFetchError(f"error listing containers: {exc}") from exc
        return [ContainerRef.from_api(entry) for entry in entries]

    def fetch_raw_stats(self, container_id: str) -> RawStats:
        """
        Fetch one stats snapshot for a container.

        Raises:
            ContainerNotFound: The container no longer exists.
            StatsFetchError: The daemon call failed.
            DecodeError: The payload could not be decoded.
        """
        try:
            payload = self._docker.api.stats(container_id, stream=False)
        except NotFound as exc:
            raise ContainerNotFound(f"container not found: {container_id}") from exc
        except (DockerException, RequestException) as exc:
            raise StatsFetchError(f"error fetching stats for {container_id}: {exc}") from exc
        return parse_raw_stats(payload)

    def find_container(self, specifier: str) -> ContainerRef:
        """Resolve an id, id prefix or name among all containers, stopped included."""
        return match_container(self.list_containers(include_stopped=True), specifier)

    # One-shot lifecycle operations

    def start(self, container_id: str) -> None:
        self._lifecycle("starting", self._docker.api.start, container_id)

    def stop(self, container_id: str) -> None:
        self._lifecycle("stopping", self._docker.api.stop, container_id)

    def remove(self, container_id: str) -> None:
        self._lifecycle("removing", self._docker.api.remove_container, container_id)

    def _lifecycle(self, action: str, operation, container_id: str) -> None:
        logger.debug("%s container %s", action.capitalize(), container_id)
        try:
            operation(container_id)
        except (DockerException, RequestException) as exc:
            message = f"error {action} container {container_id}: {exc}"
            raise LifecycleOperationError(message) from exc

    def run(self, image: str, name: str) -> ContainerRef:
        """Create a container from an image with a keep-alive command and start it."""
        try:
            container = self._docker.containers.create(
                image,
                command=KEEPALIVE_COMMAND,
                name=name,
                platform=docker_platform(),
            )
            container.start()
        except (DockerException, RequestException) as exc:
            raise LifecycleOperationError(f"error running container {name}: {exc}") from exc
        return self.find_container(name)

    def build(
        self,
        tag: str,
        dockerfile: str = "./Dockerfile",
        context_dir: str = ".",
    ) -> Iterator[str]:
        """
        Build an image and yield its build output line by line.

        Raises:
            LifecycleOperationError: If the context cannot be archived or the
                build reports an error.
        """
        try:
            context = tar_directory(dockerfile, context_dir)
        except OSError as exc:
            raise LifecycleOperationError(f"failed to create build context: {exc}") from exc

        try:
            for chunk in self._docker.api.build(
                fileobj=context,
                custom_context=True,
                tag=tag,
                dockerfile="Dockerfile",
                rm=True,
                decode=True,
            ):
                if "error" in chunk:
                    raise LifecycleOperationError(f"error building image: {chunk['error'].strip()}")
                text = chunk.get("stream") or chunk.get("status") or ""
                for line in text.splitlines():
                    if line.strip():
                        yield line
        except (DockerException, RequestException) as exc:
            raise LifecycleOperationError(f"error building image: {exc}") from exc

    def list_images(self) -> list[ImageRef]:
        """List every repository tag of the local images."""
        try:
            entries = self._docker.api.images()
        except (DockerException, RequestException) as exc:
            raise LifecycleOperationError(f"error listing images: {exc}") from exc

        images: list[ImageRef] = []
        for entry in entries:
            image_id = entry.get("Id", "").removeprefix("sha256:")[:12]
            for repo_tag in entry.get("RepoTags") or []:
                repository, tag = split_repo_tag(repo_tag)
                images.append(ImageRef(repository=repository, tag=tag, image_id=image_id))
        return images
