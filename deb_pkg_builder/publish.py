# Debian package builder: Publishing packages.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Publishing of package archives to an APT repository.

Repositories are identified by a URL. When the URL uses the ``file`` scheme
the archives are copied to the corresponding directory, any other URL is
expected to accept archives uploaded using an HTTP POST request (this is how
for example Artifactory and Nexus style upload endpoints work). Generating the
repository indexes is left to the repository.
"""

# Standard library modules.
import logging
import os
import shutil
import urllib.parse

# External dependencies.
import requests
from humanfriendly import format_path
from humanfriendly.text import pluralize

# Modules included in our package.
from deb_pkg_builder import config
from deb_pkg_builder.utils import atomic_lock, makedirs

# Public identifiers that require documentation.
__all__ = (
    "PublishError",
    "Repository",
    "default_repository_url",
    "load_repository",
    "logger",
    "publish_packages",
)

# Initialize a logger.
logger = logging.getLogger(__name__)


class Repository(object):

    """The location of an APT repository and the credentials to upload to it."""

    def __init__(self, url=None, username=None, password=None, timeout=config.REPOSITORY_TIMEOUT):
        """
        Initialize a :class:`Repository` object.

        :param url: The URL of the repository (a string or :data:`None`).
        :param username: The username for HTTP basic authentication (a string).
        :param password: The password for HTTP basic authentication (a string).
        :param timeout: The connection and response timeout in seconds (a number).
        """
        self.url = url
        self.username = username
        self.password = password
        self.timeout = timeout

    @property
    def auth(self):
        """A ``(username, password)`` tuple when both are set, :data:`None` otherwise."""
        if self.username and self.password:
            return (self.username, self.password)

    @property
    def base_url(self):
        """The repository URL with a trailing slash (a string or :data:`None`)."""
        if self.url:
            return self.url if self.url.endswith('/') else self.url + '/'

    def __repr__(self):
        """A readable representation of the repository (without the password)."""
        return "Repository(url=%r, username=%r)" % (self.url, self.username)


def default_repository_url(version, release_url, snapshot_url):
    """
    Pick the repository URL matching the type of build.

    :param version: A :class:`.ProjectVersion` object.
    :param release_url: The URL of the repository for release candidates.
    :param snapshot_url: The URL of the repository for snapshots.
    :returns: One of the two URLs.
    """
    return release_url if version.is_release_build else snapshot_url


def load_repository(options, version):
    """
    Create a :class:`Repository` based on the configuration.

    :param options: A dictionary of dictionaries as returned by
                    :func:`.config.load_config()`.
    :param version: A :class:`.ProjectVersion` object (used to pick between
                    the ``release-url`` and ``snapshot-url`` options when
                    ``url`` isn't set).
    :returns: A :class:`Repository` object.

    The environment variables ``$DPB_REPOSITORY_URL``,
    ``$DPB_REPOSITORY_USERNAME`` and ``$DPB_REPOSITORY_PASSWORD`` take
    precedence over the configuration file.
    """
    section = options.get('repository', {})
    url = config.REPOSITORY_URL or section.get('url')
    if not url:
        url = default_repository_url(version, section.get('release-url'), section.get('snapshot-url'))
    timeout = section.get('timeout')
    return Repository(
        url=url,
        username=config.REPOSITORY_USERNAME or section.get('username'),
        password=config.REPOSITORY_PASSWORD or section.get('password'),
        timeout=float(timeout) if timeout else config.REPOSITORY_TIMEOUT,
    )


def publish_packages(archives, repository):
    """
    Publish package archives to a repository.

    :param archives: An iterable with the pathnames of ``*.deb`` archives.
    :param repository: A :class:`Repository` object.
    :returns: A list with the destination of each archive: a pathname for
              ``file`` repositories, the upload URL for other repositories.
    :raises: :exc:`PublishError` when the repository responds to an upload
             with a status code outside of the 2xx range. Connection errors
             are raised by :mod:`requests`.
    """
    archives = list(archives)
    base_url = repository.base_url
    if not base_url:
        logger.info("Repository URL not defined, publish is a noop.")
        return []
    logger.info("Publishing %s to %s ..", pluralize(len(archives), "package"), base_url)
    parsed_url = urllib.parse.urlparse(base_url)
    if parsed_url.scheme == 'file':
        return copy_packages(archives, urllib.parse.unquote(parsed_url.path))
    return [upload_package(archive, base_url, repository) for archive in archives]


def copy_packages(archives, directory):
    """
    Copy package archives to a local repository directory.

    :param archives: A list with the pathnames of ``*.deb`` archives.
    :param directory: The pathname of the repository directory (created when
                      it doesn't exist yet).
    :returns: A list with the pathnames of the copied archives.
    """
    makedirs(directory)
    published = []
    with atomic_lock(directory):
        for archive in archives:
            target = os.path.join(directory, os.path.basename(archive))
            logger.debug("Copying %s to %s ..", format_path(archive), format_path(directory))
            shutil.copy(archive, target)
            published.append(target)
    return published


def upload_package(archive, base_url, repository):
    """
    Upload a package archive using an HTTP POST request.

    :param archive: The pathname of a ``*.deb`` archive.
    :param base_url: The repository URL (ending in a slash).
    :param repository: A :class:`Repository` object.
    :returns: The URL the archive was uploaded to (`base_url`).
    :raises: :exc:`PublishError` when the response status isn't 2xx.
    """
    logger.debug("Uploading %s to %s ..", format_path(archive), base_url)
    with open(archive, 'rb') as handle:
        response = requests.post(
            base_url,
            data=handle,
            headers={'Content-Type': 'multipart/form-data'},
            auth=repository.auth,
            timeout=repository.timeout,
        )
    if not 200 <= response.status_code < 300:
        raise PublishError("Unable to upload file `%s' - HTTP status %i" % (archive, response.status_code))
    return base_url


class PublishError(Exception):

    """Raised by :func:`publish_packages()` when a repository rejects an upload."""
