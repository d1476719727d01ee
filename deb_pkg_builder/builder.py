# Debian package builder: Build orchestration.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Orchestration of Debian package builds.

Two kinds of builds are supported:

:class:`DebianBuild`
  Builds a package from a ``debian`` directory (``control``, ``rules``,
  ``changelog``, ``copyright``, maintainer scripts, etc.) using
  :man:`dpkg-buildpackage`. The ``control``, ``copyright`` and ``changelog``
  files are templates that are rendered with the variables created by
  :mod:`deb_pkg_builder.template` before the build starts.

:class:`StagedBuild`
  Builds a package from a control file template, optional maintainer scripts
  and conffiles, and a list of files to install, using
  :func:`deb_pkg_builder.package.build_package()` (``dpkg-deb --build``).

Both check the resulting archive with :man:`lintian` unless disabled.
"""

# Standard library modules.
import logging
import os
import shutil
import tempfile

# External dependencies.
from executor import execute
from humanfriendly import format_path

# Modules included in our package.
from deb_pkg_builder import config
from deb_pkg_builder.control import check_mandatory_fields, load_control_file
from deb_pkg_builder.package import MAINTAINER_SCRIPTS, build_package
from deb_pkg_builder.template import create_environment_variables, create_template_variables, render_template
from deb_pkg_builder.tools import (
    DEFAULT_LINTIAN_TAGS,
    DPKG_BUILDPACKAGE_TOOL,
    DPKG_DEB_TOOL,
    DPKG_GENCONTROL_TOOL,
    ensure_tools_exist,
    run_lintian,
)
from deb_pkg_builder.utils import copy_directory, make_executable, makedirs, remove_directory

# Public identifiers that require documentation.
__all__ = (
    "BINARY_CONTROL_FILE",
    "DEFAULT_BUILD_NAME",
    "DebianBuild",
    "PackageBuild",
    "StagedBuild",
    "TEMPLATE_FILES",
    "logger",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

DEFAULT_BUILD_NAME = 'generateDeb'
"""The name of a build when the caller doesn't provide one (a string)."""

TEMPLATE_FILES = ('control', 'copyright', 'changelog')
"""The files in the ``debian`` directory that are rendered as templates (a tuple of strings)."""

BINARY_CONTROL_FILE = 'binaryControl'
"""The name of the file to which :man:`dpkg-gencontrol` writes the binary control file."""


class PackageBuild(object):

    """Shared configuration of :class:`DebianBuild` and :class:`StagedBuild`."""

    def __init__(self, project, destination_dir=None, working_dir=None, name=DEFAULT_BUILD_NAME,
                 organization=None, additional_variables=None, global_variables=None,
                 lintian_enable=None, lintian_tags=(), global_lintian_tags=()):
        """
        Initialize a build.

        :param project: The :class:`.Project` that the package belongs to.
        :param destination_dir: The directory where the package archive is
                                stored (defaults to the project's
                                distributions directory).
        :param working_dir: The directory in which the package is assembled
                            (defaults to ``debian-build/<name>`` in the
                            project's build directory). It's removed at the
                            start of every build.
        :param name: The name of the build (a string).
        :param organization: Overrides the organization of the project (a string).
        :param additional_variables: A dictionary with template variables
                                     specific to this build. These take
                                     precedence over `global_variables`.
                                     Values can be callables, see
                                     :func:`.stringize()`.
        :param global_variables: A dictionary with template variables shared
                                 by all builds.
        :param lintian_enable: :data:`True` to check the package with Lintian,
                               :data:`False` to skip the check (defaults to
                               :data:`.config.ENABLE_LINTIAN`).
        :param lintian_tags: An iterable of Lintian tags to suppress for this build.
        :param global_lintian_tags: An iterable of Lintian tags to suppress for all builds.
        """
        self.project = project
        self.name = name
        self.destination_dir = os.path.abspath(destination_dir or project.distributions_directory)
        self.working_dir = os.path.abspath(
            working_dir or os.path.join(project.build_directory, 'debian-build', name)
        )
        self.organization = organization
        self.additional_variables = dict(additional_variables or {})
        self.global_variables = dict(global_variables or {})
        self.lintian_enable = config.ENABLE_LINTIAN if lintian_enable is None else lintian_enable
        self.lintian_tags = set(lintian_tags)
        self.global_lintian_tags = set(global_lintian_tags)

    def create_template_variables(self):
        """
        Create the template variables for the Debian configuration files.

        :returns: A dictionary mapping variable names to their values.
        """
        overrides = {}
        if self.organization:
            overrides['project_organization'] = self.organization
        return create_template_variables(self.project, overrides, self.global_variables, self.additional_variables)

    def create_environment_variables(self, package_name):
        """
        Create the environment variables for the ``debian/rules`` file.

        :param package_name: The name of the package from the control file (a string).
        :returns: A dictionary mapping upper case variable names to their values.
        """
        return create_environment_variables(self.create_template_variables(), package_name)

    def create_lintian_tags(self):
        """
        Create the set of Lintian tags to suppress.

        :returns: The union of :data:`.DEFAULT_LINTIAN_TAGS`, the global tags
                  and the tags of this build (a set of strings).
        """
        return set(DEFAULT_LINTIAN_TAGS) | self.global_lintian_tags | self.lintian_tags

    def clean_working_dir(self):
        """Start with an empty working directory."""
        remove_directory(self.working_dir)
        makedirs(self.working_dir)

    def copy_to_destination(self, package_file):
        """
        Copy a package archive to the destination directory.

        :param package_file: The pathname of a package archive (a string).
        :returns: The pathname of the copy (a string).
        """
        makedirs(self.destination_dir)
        target = os.path.join(self.destination_dir, os.path.basename(package_file))
        if os.path.abspath(package_file) != target:
            logger.debug("Copying %s to %s ..", format_path(package_file), format_path(self.destination_dir))
            shutil.copy(package_file, target)
        return target


class DebianBuild(PackageBuild):

    """Build a Debian package from a ``debian`` directory using :man:`dpkg-buildpackage`."""

    def __init__(self, project, debian_dir, **options):
        """
        Initialize a :class:`DebianBuild` object.

        :param project: The :class:`.Project` that the package belongs to.
        :param debian_dir: The directory containing the control file and the
                           other Debian configuration files (a string). It is
                           copied to the working directory and the files in
                           :data:`TEMPLATE_FILES` are rendered.
        :param options: Any keyword arguments accepted by :class:`PackageBuild`.
        """
        super(DebianBuild, self).__init__(project, **options)
        self.debian_dir = os.path.abspath(debian_dir)

    def run(self):
        """
        Build, copy and check the package.

        :returns: The pathname of the package archive in the destination
                  directory (a string).
        :raises: :exc:`.MissingToolsError` when the Debian packaging tools
                 are not installed, :exc:`executor.ExternalCommandFailed`
                 when one of them fails, :exc:`~exceptions.ValueError` when
                 a control file can't be parsed.
        """
        ensure_tools_exist()
        self.clean_working_dir()
        debian_dir = self.create_debian_dir(self.working_dir)
        make_executable(os.path.join(debian_dir, 'rules'))
        source_control = load_control_file(os.path.join(debian_dir, 'control'))
        if not source_control.package:
            control_file = os.path.join(debian_dir, 'control')
            raise ValueError("The control file %s doesn't define a Package field!" % format_path(control_file))
        package_file = self.build_package(debian_dir, source_control.package)
        if self.lintian_enable:
            run_lintian(package_file, self.create_lintian_tags())
        return package_file

    def artifacts(self):
        """
        Determine the package archives generated by this build without building them.

        :returns: A set with the pathname of the package archive in the
                  destination directory.
        :raises: :exc:`executor.ExternalCommandFailed` when
                 :man:`dpkg-gencontrol` fails.

        The ``debian`` directory is rendered into a temporary directory below
        the working directory and :man:`dpkg-gencontrol` is used to generate
        the binary control file from which the filename is derived.
        """
        makedirs(self.working_dir)
        temporary_directory = tempfile.mkdtemp(prefix='ctrl', dir=self.working_dir)
        try:
            self.create_debian_dir(temporary_directory)
            logger.info("Running %s in %s ..", DPKG_GENCONTROL_TOOL, format_path(temporary_directory))
            execute(DPKG_GENCONTROL_TOOL, '-O%s' % BINARY_CONTROL_FILE,
                    directory=temporary_directory, logger=logger)
            control = load_control_file(os.path.join(temporary_directory, BINARY_CONTROL_FILE))
        finally:
            shutil.rmtree(temporary_directory)
        return set([os.path.join(self.destination_dir, control.package_filename)])

    def create_debian_dir(self, base_directory):
        """
        Copy the ``debian`` directory and render its templates.

        :param base_directory: The directory in which to create the
                               ``debian`` directory (a string).
        :returns: The pathname of the created ``debian`` directory (a string).
        """
        target_directory = os.path.join(base_directory, 'debian')
        copy_directory(self.debian_dir, target_directory)
        variables = self.create_template_variables()
        for filename in TEMPLATE_FILES:
            source = os.path.join(self.debian_dir, filename)
            if os.path.isfile(source):
                render_template(source, os.path.join(target_directory, filename), variables)
        return target_directory

    def build_package(self, debian_dir, package_name):
        """
        Run :man:`dpkg-buildpackage` and copy the resulting archive.

        :param debian_dir: The pathname of the rendered ``debian`` directory.
        :param package_name: The name of the package from the source control file.
        :returns: The pathname of the package archive in the destination directory.
        """
        logger.info("Running %s in %s ..", DPKG_BUILDPACKAGE_TOOL, format_path(self.working_dir))
        execute(DPKG_BUILDPACKAGE_TOOL, '--build=binary', '--no-sign',
                directory=self.working_dir,
                environment=self.create_environment_variables(package_name),
                logger=logger)
        binary_control = load_control_file(os.path.join(debian_dir, package_name, 'DEBIAN', 'control'))
        # dpkg-buildpackage stores the archive in the parent of the source tree.
        package_file = os.path.join(os.path.dirname(self.working_dir), binary_control.package_filename)
        return self.copy_to_destination(package_file)


class StagedBuild(PackageBuild):

    """Build a Debian package from individual files using ``dpkg-deb --build``."""

    def __init__(self, project, control_file, files=(), conffiles_file=None, scripts=None, **options):
        """
        Initialize a :class:`StagedBuild` object.

        :param project: The :class:`.Project` that the package belongs to.
        :param control_file: The pathname of the binary control file template (a string).
        :param files: An iterable of ``(source, directory)`` tuples. Regular
                      files are copied into the given directory inside the
                      package, the contents of directories are copied to
                      the given directory.
        :param conffiles_file: The pathname of a ``conffiles`` file (optional).
        :param scripts: A dictionary mapping the names in
                        :data:`.MAINTAINER_SCRIPTS` to script pathnames.
        :param options: Any keyword arguments accepted by :class:`PackageBuild`.
        :raises: :exc:`~exceptions.ValueError` when an unknown maintainer
                 script is given.
        """
        super(StagedBuild, self).__init__(project, **options)
        self.control_file = os.path.abspath(control_file)
        self.files = [(os.path.abspath(source), directory) for source, directory in files]
        self.conffiles_file = conffiles_file and os.path.abspath(conffiles_file)
        self.scripts = dict(scripts or {})
        unknown = sorted(set(self.scripts) - set(MAINTAINER_SCRIPTS))
        if unknown:
            raise ValueError("Unknown maintainer script(s): %s" % ", ".join(unknown))

    @property
    def staging_dir(self):
        """The directory in which the package tree is assembled (a string)."""
        return os.path.join(self.working_dir, 'stage')

    def run(self):
        """
        Assemble, build and check the package.

        :returns: The pathname of the package archive in the destination directory.
        :raises: :exc:`.MissingToolsError` when :man:`dpkg-deb` is not
                 installed, :exc:`~exceptions.ValueError` when mandatory
                 control fields are missing and
                 :exc:`executor.ExternalCommandFailed` when an external
                 command fails.
        """
        ensure_tools_exist([DPKG_DEB_TOOL])
        self.clean_working_dir()
        self.create_package_tree(self.staging_dir)
        return build_package(
            self.staging_dir,
            repository=self.destination_dir,
            check_package=self.lintian_enable,
            suppress_tags=self.create_lintian_tags(),
            copy_files=False,
        )

    def artifacts(self):
        """
        Determine the package archives generated by this build without building them.

        :returns: A set with the pathname of the package archive in the
                  destination directory.
        """
        makedirs(self.working_dir)
        temporary_directory = tempfile.mkdtemp(prefix='ctrl', dir=self.working_dir)
        try:
            control_file = os.path.join(temporary_directory, 'control')
            render_template(self.control_file, control_file, self.create_template_variables())
            control = load_control_file(control_file)
        finally:
            shutil.rmtree(temporary_directory)
        return set([os.path.join(self.destination_dir, control.package_filename)])

    def create_package_tree(self, directory):
        """
        Assemble the package tree.

        :param directory: The directory in which to assemble the tree (a string).
        """
        control_directory = os.path.join(directory, 'DEBIAN')
        control_file = os.path.join(control_directory, 'control')
        render_template(self.control_file, control_file, self.create_template_variables())
        check_mandatory_fields(load_control_file(control_file))
        if self.conffiles_file:
            shutil.copy(self.conffiles_file, os.path.join(control_directory, 'conffiles'))
        for script_name, pathname in self.scripts.items():
            target = os.path.join(control_directory, script_name)
            shutil.copy(pathname, target)
            make_executable(target)
        for source, target_directory in self.files:
            target_directory = os.path.join(directory, target_directory.strip('/'))
            if os.path.isdir(source):
                copy_directory(source, target_directory)
            else:
                makedirs(target_directory)
                shutil.copy2(source, os.path.join(target_directory, os.path.basename(source)))
        logger.debug("Assembled package tree in %s.", format_path(directory))
