# Debian package builder: Utility functions.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""Filesystem helpers shared by the other modules."""

# Standard library modules.
import hashlib
import logging
import os
import shutil
import tempfile
import time

# External dependencies.
from humanfriendly import Timer, format_path
from humanfriendly.terminal.spinners import Spinner

# Initialize a logger.
logger = logging.getLogger(__name__)

EXECUTABLE_MODE = 0o755
"""The file mode given to executable files (``rwxr-xr-x``)."""


def makedirs(directory):
    """
    Create a directory and any missing parent directories.

    :param directory: The pathname of a directory (a string).
    :returns: :data:`True` when the directory was created, :data:`False` when
              it already existed.
    """
    try:
        os.makedirs(directory)
    except FileExistsError:
        return False
    return True


def remove_directory(directory):
    """
    Remove a directory tree if it exists.

    :param directory: The pathname of a directory (a string).
    :returns: :data:`True` when the directory was removed, :data:`False` when
              there was nothing to remove.
    """
    if not os.path.isdir(directory):
        return False
    logger.debug("Removing directory %s ..", format_path(directory))
    shutil.rmtree(directory)
    return True


def copy_directory(from_directory, to_directory):
    """
    Recursively copy the contents of one directory into another.

    :param from_directory: The pathname of the source directory (a string).
    :param to_directory: The pathname of the target directory (a string). It
                         is created when it doesn't exist yet, existing files
                         are overwritten.

    Symbolic links are copied as links, file modes and timestamps are kept.
    """
    logger.debug("Copying %s to %s ..", format_path(from_directory), format_path(to_directory))
    makedirs(to_directory)
    for entry in os.listdir(from_directory):
        source = os.path.join(from_directory, entry)
        target = os.path.join(to_directory, entry)
        if os.path.isdir(source) and not os.path.islink(source):
            copy_directory(source, target)
        else:
            shutil.copy2(source, target, follow_symlinks=False)


def make_executable(filename):
    """
    Give a file the mode ``rwxr-xr-x``.

    :param filename: The pathname of a file (a string).
    :returns: :data:`True` when the file exists, :data:`False` otherwise.
    """
    if not os.path.isfile(filename):
        return False
    logger.debug("Changing mode of %s to %o ..", format_path(filename), EXECUTABLE_MODE)
    os.chmod(filename, EXECUTABLE_MODE)
    return True


class atomic_lock(object):

    """
    Exclusive access to a file or directory between processes.

    The lock is a directory in the system wide temporary directory whose name
    is derived from the locked pathname. Creating a directory is atomic on
    UNIX so only one process can hold the lock:

    .. code-block:: python

       with atomic_lock('/srv/apt/snapshots'):
           ...  # nobody else is publishing to /srv/apt/snapshots
    """

    def __init__(self, pathname, wait=True):
        """
        Initialize an :class:`atomic_lock` object.

        :param pathname: The pathname of a file or directory (a string).
        :param wait: :data:`True` to wait for the lock (the default),
                     :data:`False` to raise :exc:`ResourceLockedException`
                     when someone else holds it.
        """
        self.pathname = os.path.realpath(pathname)
        self.wait = wait
        fingerprint = hashlib.sha1(self.pathname.encode('UTF-8')).hexdigest()
        self.lock_directory = os.path.join(tempfile.gettempdir(), 'deb-pkg-builder-%s.lock' % fingerprint)

    def __enter__(self):
        """Claim the lock."""
        spinner = Spinner()
        timer = Timer()
        while not makedirs(self.lock_directory):
            if not self.wait:
                raise ResourceLockedException("Failed to lock %s for exclusive access!" % self.pathname)
            spinner.step(label="Waiting for lock on %s: %s .." % (format_path(self.pathname), timer))
            time.sleep(0.1)
        spinner.clear()

    def __exit__(self, exc_type=None, exc_value=None, traceback=None):
        """Release the lock."""
        if os.path.isdir(self.lock_directory):
            os.rmdir(self.lock_directory)


class ResourceLockedException(Exception):

    """Raised by :class:`atomic_lock` when the lock is held by someone else."""
