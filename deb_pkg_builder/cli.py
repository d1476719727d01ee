# Debian package builder: Command line interface.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Usage: deb-pkg-builder [OPTIONS] [ARCHIVE ...]

Build Debian binary packages using dpkg-buildpackage or dpkg-deb, check them
with Lintian and publish them to an APT repository. Project metadata is
loaded from the deb-pkg-builder.ini file in the current working directory.

Supported options:

  -b, --build=DIR

    Build a package from the `debian' directory given by DIR using
    dpkg-buildpackage. The control, copyright and changelog files in DIR are
    rendered as templates before the build starts.

  -s, --stage=DIR

    Build a package from the staged directory tree given by DIR (which
    contains a DEBIAN/control file) using `dpkg-deb --build'.

  -a, --artifacts

    Print the pathnames of the package archives that the builds selected
    using -b, --build and -s, --stage would produce, without building them.
    This option can't be combined with -p, --publish.

  -o, --output=DIR

    Store package archives in the directory given by DIR (defaults to
    build/distributions in the project directory).

  -w, --working-dir=DIR

    Assemble packages in the directory given by DIR (defaults to
    build/debian-build/generateDeb in the project directory).

  -D, --define=NAME=VALUE

    Define an additional template variable. This option can be repeated.

  -t, --suppress-tag=TAG

    Suppress the Lintian tag given by TAG. This option can be repeated.

  --no-lintian

    Don't check the built packages with Lintian.

  -p, --publish

    Publish the built package archives and the package archives given as
    positional arguments to the repository.

  -r, --repository=URL

    The URL of the repository to publish to (overrides the configuration).

  -u, --username=NAME

    The username for the repository (the password is taken from the
    configuration or the $DPB_REPOSITORY_PASSWORD environment variable).

  -i, --inspect=FILE

    Show the metadata and contents of the Debian binary package archive given
    by FILE (similar to `dpkg --info').

  -c, --config=FILE

    Load additional configuration from the *.ini file given by FILE.

  -v, --verbose

    Make more noise! (useful during debugging)

  -q, --quiet

    Only show warnings and errors.

  -h, --help

    Show this message and exit.
"""

# Standard library modules.
import codecs
import getopt
import logging
import os
import sys

# External dependencies.
import coloredlogs
from humanfriendly import coerce_boolean, format_path, format_size, parse_path
from humanfriendly.terminal import HIGHLIGHT_COLOR, ansi_wrap, terminal_supports_colors, usage, warning
from humanfriendly.text import format, pluralize

# Modules included in our package.
from deb_pkg_builder.builder import DebianBuild
from deb_pkg_builder.config import ENABLE_LINTIAN, load_config, load_config_files, split_list
from deb_pkg_builder.package import build_package, determine_package_archive, inspect_package
from deb_pkg_builder.project import load_project
from deb_pkg_builder.publish import load_repository, publish_packages
from deb_pkg_builder.tools import DEFAULT_LINTIAN_TAGS

# Initialize a logger.
logger = logging.getLogger(__name__)

OUTPUT_ENCODING = 'UTF-8'


def main():
    """Command line interface for the ``deb-pkg-builder`` program."""
    # Configure logging output.
    coloredlogs.install()
    # Command line option defaults.
    builds = []
    inspect_archives = []
    show_artifacts = False
    destination_dir = None
    working_dir = None
    variables = {}
    suppress_tags = set()
    lintian_enable = None
    publish = False
    repository_url = None
    username = None
    config_file = None
    # Parse the command line options.
    try:
        options, arguments = getopt.getopt(sys.argv[1:], 'b:s:ao:w:D:t:pr:u:i:c:vqh', [
            'build=', 'stage=', 'artifacts', 'output=', 'working-dir=', 'define=',
            'suppress-tag=', 'no-lintian', 'publish', 'repository=', 'username=',
            'inspect=', 'config=', 'verbose', 'quiet', 'help',
        ])
        for option, value in options:
            if option in ('-b', '--build'):
                builds.append(('debian', check_directory(value)))
            elif option in ('-s', '--stage'):
                builds.append(('stage', check_directory(value)))
            elif option in ('-a', '--artifacts'):
                show_artifacts = True
            elif option in ('-o', '--output'):
                destination_dir = parse_path(value)
            elif option in ('-w', '--working-dir'):
                working_dir = parse_path(value)
            elif option in ('-D', '--define'):
                name, delimiter, text = value.partition('=')
                if not (name.strip() and delimiter):
                    raise Exception("Invalid variable definition! (expected NAME=VALUE, got %r)" % value)
                variables[name.strip()] = text
            elif option in ('-t', '--suppress-tag'):
                suppress_tags.update(split_list(value))
            elif option == '--no-lintian':
                lintian_enable = False
            elif option in ('-p', '--publish'):
                publish = True
            elif option in ('-r', '--repository'):
                repository_url = value
            elif option in ('-u', '--username'):
                username = value
            elif option in ('-i', '--inspect'):
                inspect_archives.append(check_file(value))
            elif option in ('-c', '--config'):
                config_file = check_file(value)
            elif option in ('-v', '--verbose'):
                coloredlogs.increase_verbosity()
            elif option in ('-q', '--quiet'):
                coloredlogs.decrease_verbosity()
            elif option in ('-h', '--help'):
                usage(__doc__)
                return
        if arguments and not publish:
            raise Exception("Package archives given as arguments can only be published! (use -p, --publish)")
        if show_artifacts and publish:
            raise Exception("The -a, --artifacts and -p, --publish options can't be combined!")
    except Exception as e:
        warning("Error: %s", e)
        sys.exit(1)
    # Execute the selected actions.
    try:
        if not (builds or inspect_archives or publish):
            usage(__doc__)
            return
        for archive in inspect_archives:
            show_package_metadata(archive)
        if builds or publish:
            directory = os.getcwd()
            settings = load_options(directory, config_file)
            project = load_project(directory, settings)
            deb_options = settings.get('deb', {})
            if lintian_enable is None and deb_options.get('lintian'):
                lintian_enable = coerce_boolean(deb_options['lintian'])
            global_tags = set(split_list(deb_options.get('lintian-tags')))
            archives = []
            for kind, build_directory in builds:
                if kind == 'debian':
                    build = DebianBuild(
                        project, build_directory,
                        destination_dir=destination_dir,
                        working_dir=working_dir,
                        additional_variables=variables,
                        global_variables=settings.get('variables', {}),
                        lintian_enable=lintian_enable,
                        lintian_tags=suppress_tags,
                        global_lintian_tags=global_tags,
                    )
                    if show_artifacts:
                        archives.extend(sorted(build.artifacts()))
                    else:
                        archives.append(build.run())
                else:
                    archives.append(stage_package(
                        build_directory,
                        destination_dir=destination_dir or project.distributions_directory,
                        lintian_enable=lintian_enable,
                        suppress_tags=DEFAULT_LINTIAN_TAGS | global_tags | suppress_tags,
                        dry_run=show_artifacts,
                    ))
            if show_artifacts:
                for pathname in archives:
                    say(pathname)
            elif archives:
                logger.info("Built %s.", pluralize(len(archives), "package"))
            if publish:
                repository = load_repository(settings, project.version)
                if repository_url:
                    repository.url = repository_url
                if username:
                    repository.username = username
                publish_packages(archives + [check_file(a) for a in arguments], repository)
    except Exception:
        logger.exception("An error occurred! Aborting..")
        sys.exit(1)


def load_options(directory, config_file=None):
    """
    Load the configuration of the project in the given directory.

    :param directory: The pathname of the project directory (a string).
    :param config_file: The pathname of an additional configuration file that
                        takes precedence over the other configuration files
                        (a string or :data:`None`).
    :returns: A dictionary of dictionaries (see :func:`.load_config()`).
    """
    options = load_config(directory)
    if config_file:
        for name, section in load_config_files(config_file).items():
            options.setdefault(name, {}).update(section)
    return options


def stage_package(directory, destination_dir, lintian_enable=None, suppress_tags=(), dry_run=False):
    """
    Build a package from a staged directory tree.

    :param directory: The pathname of a directory with a ``DEBIAN/control`` file.
    :param destination_dir: The directory where the archive is stored.
    :param lintian_enable: :data:`False` to skip the Lintian check (defaults
                           to :data:`.ENABLE_LINTIAN`).
    :param suppress_tags: An iterable of Lintian tags to suppress.
    :param dry_run: :data:`True` to only compute the archive pathname.
    :returns: The pathname of the package archive (a string).
    """
    if dry_run:
        return os.path.join(destination_dir, determine_package_archive(directory))
    return build_package(
        directory,
        repository=destination_dir,
        check_package=ENABLE_LINTIAN if lintian_enable is None else lintian_enable,
        suppress_tags=suppress_tags,
    )


def show_package_metadata(archive):
    """
    Print the control fields and the contents of a package archive.

    :param archive: The pathname of a ``*.deb`` archive (a string).
    """
    control_fields, contents = inspect_package(archive)
    say(highlight("Control fields of %s:"), format_path(archive))
    for name in sorted(control_fields.keys()):
        value = control_fields[name]
        if name == 'Installed-Size':
            # The field is expressed in kilobytes.
            value = format_size(int(value) * 1024)
        say(" - %s %s", highlight("%s:" % name), value)
    say(highlight("Contents of %s:"), format_path(archive))
    for pathname in sorted(contents):
        entry = contents[pathname]
        say("{mode} {owner}/{group} {size} {date} {name}",
            mode=entry.permissions,
            owner=entry.owner,
            group=entry.group,
            size=format_size(entry.size, keep_width=True).rjust(10),
            date=entry.modified,
            name=("%s -> %s" % (pathname, entry.target)) if entry.target else pathname)


def highlight(text):
    """Wrap text in ANSI escape sequences, but only when standard output is a terminal."""
    return ansi_wrap(text, color=HIGHLIGHT_COLOR) if terminal_supports_colors(sys.stdout) else text


def check_directory(argument):
    """
    Expand a command line argument that should refer to a directory.

    :param argument: The command line argument (a string).
    :returns: The absolute pathname of the directory (a string).
    :raises: :exc:`~exceptions.Exception` when the directory is missing.
    """
    return check_path(argument, os.path.isdir, "Directory")


def check_file(argument):
    """
    Expand a command line argument that should refer to a file.

    :param argument: The command line argument (a string).
    :returns: The absolute pathname of the file (a string).
    :raises: :exc:`~exceptions.Exception` when the file is missing.
    """
    return check_path(argument, os.path.isfile, "File")


def check_path(argument, predicate, kind):
    pathname = parse_path(argument)
    if not predicate(pathname):
        raise Exception("%s %s doesn't exist!" % (kind, format_path(pathname)))
    return pathname


def say(text, *args, **kw):
    """Print a line of (formatted) text to standard output."""
    line = format(text, *args, **kw)
    try:
        print(line)
    except UnicodeEncodeError:
        # The terminal can't represent the text, fall back to UTF-8.
        sys.stdout.buffer.write(codecs.encode(line + '\n', OUTPUT_ENCODING))
        sys.stdout.flush()
