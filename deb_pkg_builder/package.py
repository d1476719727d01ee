# Debian package builder: Package trees and archives.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Staged package trees and the archives built from them.

A staged package tree is a directory laid out the way the package will be
installed, plus a ``DEBIAN`` directory with the control file, conffiles and
maintainer scripts. :func:`build_package()` turns such a tree into a ``*.deb``
archive using ``dpkg-deb --build`` after tidying it up, the other functions
read archives back (using ``dpkg-deb``) and take apart archive filenames.
"""

# Standard library modules.
import collections
import fnmatch
import logging
import os
import re
import shutil
import tempfile

# External dependencies.
from executor import execute
from humanfriendly import coerce_boolean, format_path
from humanfriendly.text import pluralize

# Modules included in our package.
from deb_pkg_builder.control import load_control_file, patch_control_file
from deb_pkg_builder.deb822 import parse_deb822
from deb_pkg_builder.tools import DPKG_DEB_TOOL, LINTIAN_TOOL, run_lintian, tools_exist
from deb_pkg_builder.utils import EXECUTABLE_MODE, make_executable, makedirs

# Public identifiers that require documentation.
__all__ = (
    "ALLOW_CHOWN",
    "ALLOW_FAKEROOT_OR_SUDO",
    "ALLOW_RESET_SETGID",
    "ARCHIVE_EXTENSIONS",
    "ArchiveEntry",
    "JUNK_DIRECTORIES",
    "JUNK_FILES",
    "MAINTAINER_SCRIPTS",
    "PackageFile",
    "ROOT_GROUP",
    "ROOT_USER",
    "build_package",
    "clean_package_tree",
    "copy_package_files",
    "determine_package_archive",
    "inspect_package",
    "inspect_package_contents",
    "inspect_package_fields",
    "logger",
    "normalize_permissions",
    "parse_filename",
    "update_conffiles",
    "update_installed_size",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

ARCHIVE_EXTENSIONS = ('.deb', '.udeb')
"""The filename extensions recognized by :func:`parse_filename()` (a tuple of strings)."""

MAINTAINER_SCRIPTS = ('preinst', 'postinst', 'prerm', 'postrm')
"""The names of the maintainer scripts in the ``DEBIAN`` directory (a tuple of strings)."""

JUNK_DIRECTORIES = ('.bzr', '.git', '.hg', '.svn', '__pycache__')
"""
:mod:`fnmatch` patterns of directories that :func:`clean_package_tree()`
removes (version control metadata and byte code caches, which Lintian
complains about).
"""

JUNK_FILES = ('*.pyc', '*.pyo', '*~', '.*.sw?', '.DS_Store', '._*', '.gitignore', '.hgignore')
"""
:mod:`fnmatch` patterns of files that :func:`clean_package_tree()` removes
(byte code, editor backup and swap files, macOS metadata and ignore files).
"""

ALLOW_CHOWN = coerce_boolean(os.environ.get('DPB_CHOWN_FILES', 'true'))
"""
:data:`True` to give all packaged files to :data:`ROOT_USER` and
:data:`ROOT_GROUP` (``$DPB_CHOWN_FILES``).
"""

ALLOW_FAKEROOT_OR_SUDO = coerce_boolean(os.environ.get('DPB_ALLOW_FAKEROOT_OR_SUDO', 'true'))
"""
:data:`True` to run ownership and permission changes and ``dpkg-deb --build``
under :man:`fakeroot` (``$DPB_ALLOW_FAKEROOT_OR_SUDO``).
"""

ALLOW_RESET_SETGID = coerce_boolean(os.environ.get('DPB_RESET_SETGID', 'true'))
"""
:data:`True` to clear the setgid bit of directories, which ``dpkg-deb``
refuses in the control directory (``$DPB_RESET_SETGID``).
"""

ROOT_USER = os.environ.get('DPB_ROOT_USER', 'root')
"""The owner of packaged files (``$DPB_ROOT_USER``, defaults to ``root``)."""

ROOT_GROUP = os.environ.get('DPB_ROOT_GROUP', 'root')
"""The group of packaged files (``$DPB_ROOT_GROUP``, defaults to ``root``)."""

CONTENTS_PATTERN = re.compile(r'''
    ^ (?P<permissions> \S+ ) \s+
    (?P<owner> [^/\s]+ ) / (?P<group> \S+ ) \s+
    (?P<size> \S+ ) \s+
    (?P<modified> \S+ \s \S+ ) \s+
    \. (?P<pathname> /.* ) $
''', re.VERBOSE)
"""Matches the lines printed by ``dpkg-deb --contents``."""


class PackageFile(collections.namedtuple('PackageFile', 'name, version, architecture, filename')):

    """
    The components of a package archive filename (see :func:`parse_filename()`).

    The fields are `name`, `version` and `architecture` (strings taken from
    the filename) and `filename` (the absolute pathname of the archive).
    """

    @property
    def basename(self):
        """The filename of the package archive without its directory (a string)."""
        return os.path.basename(self.filename)


class ArchiveEntry(collections.namedtuple('ArchiveEntry', 'permissions, owner, group, size, modified, target')):

    """
    A file or directory in a package archive (see :func:`inspect_package_contents()`).

    The fields are `permissions` (like ``drwxr-xr-x``), `owner` and `group`
    (names), `size` (bytes, zero for device files), `modified` (a string
    like ``2021-11-27 19:45``) and `target` (the target of a symbolic or
    hard link, otherwise an empty string).
    """


def parse_filename(filename):
    """
    Split the filename of a package archive into its components.

    :param filename: The pathname of a ``*.deb`` or ``*.udeb`` archive (a
                     string) or a :class:`PackageFile` object.
    :returns: A :class:`PackageFile` object.
    :raises: :exc:`~exceptions.ValueError` when the extension isn't one of
             :data:`ARCHIVE_EXTENSIONS` or the name isn't made up of three
             components separated by underscores.

    >>> from deb_pkg_builder.package import parse_filename
    >>> components = parse_filename('/tmp/example-tools_1.2.3_amd64.deb')
    >>> components.name, components.version, components.architecture
    ('example-tools', '1.2.3', 'amd64')
    """
    if isinstance(filename, PackageFile):
        return filename
    pathname = os.path.abspath(filename)
    name, extension = os.path.splitext(os.path.basename(pathname))
    if extension not in ARCHIVE_EXTENSIONS:
        raise ValueError("Not a package archive filename! (%r)" % pathname)
    components = name.split('_')
    if len(components) != 3:
        raise ValueError("Expected a filename like name_version_architecture.deb! (got %r)" % pathname)
    return PackageFile(*components, filename=pathname)


def inspect_package(archive):
    """
    Read the control fields and contents of a package archive.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    :returns: A tuple with the results of :func:`inspect_package_fields()`
              and :func:`inspect_package_contents()`.
    """
    return inspect_package_fields(archive), inspect_package_contents(archive)


def inspect_package_fields(archive):
    """
    Read the control fields of a package archive using ``dpkg-deb --field``.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    :returns: A :class:`.Deb822` object.
    """
    output = execute(DPKG_DEB_TOOL, '--field', archive, capture=True, logger=logger)
    return parse_deb822(output, filename=archive)


def inspect_package_contents(archive):
    """
    List the contents of a package archive using ``dpkg-deb --contents``.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    :returns: A dictionary that maps absolute pathnames inside the package
              (directories end in a slash) to :class:`ArchiveEntry` objects.
    """
    contents = {}
    output = execute(DPKG_DEB_TOOL, '--contents', archive, capture=True, logger=logger)
    for line in output.splitlines():
        match = CONTENTS_PATTERN.match(line)
        if not match:
            logger.warning("Ignoring unexpected output of %s: %r", DPKG_DEB_TOOL, line)
            continue
        pathname, target = match.group('pathname'), ''
        for delimiter in (' -> ', ' link to '):
            if delimiter in pathname:
                pathname, target = pathname.split(delimiter, 1)
                break
        if target.startswith('./'):
            target = target[1:]
        size = match.group('size')
        contents[pathname] = ArchiveEntry(
            permissions=match.group('permissions'),
            owner=match.group('owner'),
            group=match.group('group'),
            # Device files show "major,minor" instead of a size.
            size=int(size) if size.isdigit() else 0,
            modified=match.group('modified'),
            target=target,
        )
    return contents


def build_package(directory, repository=None, check_package=True, suppress_tags=(), copy_files=True):
    """
    Build a package archive from a staged package tree.

    :param directory: The pathname of a staged package tree (a directory with
                      a ``DEBIAN/control`` file).
    :param repository: The directory in which to create the archive (created
                       when it doesn't exist). When not given a new temporary
                       directory is used and the caller owns it.
    :param check_package: :data:`True` to check the archive with Lintian
                          (skipped with a warning when Lintian isn't
                          installed), :data:`False` to skip the check.
    :param suppress_tags: An iterable of Lintian tags to suppress.
    :param copy_files: :data:`True` to work on a temporary copy of the tree,
                       :data:`False` to modify `directory` in place.
    :returns: The pathname of the ``*.deb`` archive (a string).
    :raises: :exc:`~exceptions.ValueError` when the control file doesn't
             determine the archive name, :exc:`executor.ExternalCommandFailed`
             when an external command (including Lintian) fails.

    Before ``dpkg-deb --build`` runs the tree is tidied up by
    :func:`clean_package_tree()`, :func:`update_conffiles()`,
    :func:`update_installed_size()` and :func:`normalize_permissions()`.
    """
    package_file = os.path.join(
        repository or tempfile.mkdtemp(prefix='deb-pkg-builder-'),
        determine_package_archive(directory),
    )
    if copy_files:
        build_directory = tempfile.mkdtemp(prefix='deb-pkg-builder-')
        copy_package_files(directory, build_directory)
    else:
        build_directory = directory
    try:
        clean_package_tree(build_directory)
        update_conffiles(build_directory)
        update_installed_size(build_directory)
        normalize_permissions(build_directory)
        makedirs(os.path.dirname(package_file))
        logger.info("Running %s on %s ..", DPKG_DEB_TOOL, format_path(build_directory))
        execute(DPKG_DEB_TOOL, '--build', build_directory, package_file,
                fakeroot=ALLOW_FAKEROOT_OR_SUDO, logger=logger)
    finally:
        if copy_files:
            shutil.rmtree(build_directory)
    if check_package:
        if tools_exist([LINTIAN_TOOL]):
            run_lintian(package_file, suppress_tags)
        else:
            logger.warning("Skipping package check because %s isn't installed.", LINTIAN_TOOL)
    return package_file


def determine_package_archive(directory):
    """
    Get the filename of the archive that :func:`build_package()` would create.

    :param directory: The pathname of a staged package tree.
    :returns: A filename like ``name_version_architecture.deb``.
    :raises: :exc:`~exceptions.ValueError` when one of the fields that
             determine the filename is missing from ``DEBIAN/control``.
    """
    return load_control_file(os.path.join(directory, 'DEBIAN', 'control')).package_filename


def copy_package_files(from_directory, to_directory):
    """
    Copy a staged package tree with ``cp --archive``.

    :param from_directory: The pathname of a staged package tree.
    :param to_directory: The pathname of the copy (created when it doesn't exist).
    """
    logger.debug("Copying %s to %s ..", format_path(from_directory), format_path(to_directory))
    makedirs(to_directory)
    # The trailing "/." includes hidden files.
    execute('cp', '--archive', os.path.join(from_directory, '.'), to_directory, logger=logger)


def clean_package_tree(directory, junk_directories=JUNK_DIRECTORIES, junk_files=JUNK_FILES):
    """
    Remove files that don't belong in a package from a staged package tree.

    :param directory: The pathname of a staged package tree.
    :param junk_directories: :mod:`fnmatch` patterns of directory names
                             (defaults to :data:`JUNK_DIRECTORIES`).
    :param junk_files: :mod:`fnmatch` patterns of filenames (defaults to
                       :data:`JUNK_FILES`).
    """
    def is_junk(name, patterns):
        return any(fnmatch.fnmatch(name, pattern) for pattern in patterns)

    for root, dirs, files in os.walk(directory):
        for name in [d for d in dirs if is_junk(d, junk_directories)]:
            logger.debug("Removing directory %s ..", format_path(os.path.join(root, name)))
            shutil.rmtree(os.path.join(root, name))
            dirs.remove(name)
        for name in [f for f in files if is_junk(f, junk_files)]:
            logger.debug("Removing file %s ..", format_path(os.path.join(root, name)))
            os.unlink(os.path.join(root, name))


def update_conffiles(directory):
    """
    Mark the regular files below ``/etc`` as configuration files.

    :param directory: The pathname of a staged package tree.

    Entries in an existing ``DEBIAN/conffiles`` file are kept when they refer
    to a file in the tree and dropped (with a warning) otherwise.
    """
    conffiles_file = os.path.join(directory, 'DEBIAN', 'conffiles')
    entries = set()
    if os.path.isfile(conffiles_file):
        with open(conffiles_file) as handle:
            for entry in filter(None, (line.strip() for line in handle)):
                if os.path.isfile(os.path.join(directory, entry.lstrip('/'))):
                    entries.add(entry)
                else:
                    logger.warning("Dropping conffiles entry for missing file %s.", entry)
        os.unlink(conffiles_file)
    for root, dirs, files in os.walk(os.path.join(directory, 'etc')):
        for name in files:
            pathname = os.path.join(root, name)
            if not os.path.islink(pathname):
                entries.add('/' + os.path.relpath(pathname, directory))
    if entries:
        with open(conffiles_file, 'w') as handle:
            handle.writelines('%s\n' % entry for entry in sorted(entries))
        logger.debug("Marked %s as configuration files.", pluralize(len(entries), "file"))


def update_installed_size(directory):
    """
    Set the ``Installed-Size`` field of ``DEBIAN/control`` (in KiB) using :man:`du`.

    :param directory: The pathname of a staged package tree.
    """
    kilobytes = execute('du', '--summarize', '--block-size=1K', directory, capture=True, logger=logger).split()[0]
    logger.debug("Installed size of %s is %s KiB.", format_path(directory), kilobytes)
    patch_control_file(os.path.join(directory, 'DEBIAN', 'control'), {'Installed-Size': kilobytes})


def normalize_permissions(directory):
    """
    Prepare file ownership and permissions for ``dpkg-deb --build``.

    :param directory: The pathname of a staged package tree.

    The tree itself and the maintainer scripts get mode 0755, group and world
    write permissions are removed, ownership is given to :data:`ROOT_USER`
    (see :data:`ALLOW_CHOWN`) and setgid bits are cleared from directories
    (see :data:`ALLOW_RESET_SETGID`).
    """
    # Temporary directories are created with mode 0700.
    os.chmod(directory, EXECUTABLE_MODE)
    for name in MAINTAINER_SCRIPTS:
        make_executable(os.path.join(directory, 'DEBIAN', name))
    if ALLOW_CHOWN:
        owner = '%s:%s' % (ROOT_USER, ROOT_GROUP)
        logger.debug("Giving packaged files to %s ..", owner)
        execute('chown', '--recursive', owner, directory, fakeroot=ALLOW_FAKEROOT_OR_SUDO, logger=logger)
    execute('chmod', '--recursive', 'go-w', directory, fakeroot=ALLOW_FAKEROOT_OR_SUDO, logger=logger)
    if ALLOW_RESET_SETGID:
        execute('find . -type d -perm -g+s -print0 | xargs --no-run-if-empty -0 chmod g-s',
                directory=directory, fakeroot=ALLOW_FAKEROOT_OR_SUDO, logger=logger)
