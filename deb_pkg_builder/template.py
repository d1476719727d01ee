# Debian package builder: Template variables and rendering.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
Variable substitution in Debian configuration files.

To avoid duplication of information between the project metadata and the
files in the ``debian`` directory, a number of project properties are made
available to the ``control``, ``copyright`` and ``changelog`` files as
template variables prefixed with ``project_`` (for example ``project_name``
and ``project_version``). The templates are rendered using Jinja2_:

.. code-block:: none

   Source: {{ project_name }}
   Maintainer: {{ project_organization }}

   Package: {{ project_name }}
   Architecture: {{ architecture }}

The same variables are passed to :man:`dpkg-buildpackage` (and therefore to
``debian/rules``) as environment variables with upper case names.

.. _Jinja2: https://jinja.palletsprojects.com/
"""

# Standard library modules.
import logging
import os

# External dependencies.
from humanfriendly import format_path
from jinja2 import Environment, FileSystemLoader, StrictUndefined

# Modules included in our package.
from deb_pkg_builder.project import get_build_year, get_changelog_date
from deb_pkg_builder.utils import makedirs

# Public identifiers that require documentation.
__all__ = (
    "TEMPLATE_ENCODING",
    "create_environment_variables",
    "create_template_variables",
    "logger",
    "render_template",
    "stringize",
)

# Initialize a logger.
logger = logging.getLogger(__name__)

TEMPLATE_ENCODING = 'UTF-8'
"""The character encoding of templates and rendered files (a string)."""


def stringize(value):
    """
    Convert a variable value to a string.

    :param value: The value to convert. When this is a callable it is called
                  without arguments and the value it returns is converted.
    :returns: A string or :data:`None` (when the value, or the value returned
              by the callable, is :data:`None`).

    >>> from deb_pkg_builder.template import stringize
    >>> stringize(123)
    '123'
    >>> stringize(lambda: 1234)
    '1234'
    >>> stringize(lambda: None) is None
    True
    """
    if callable(value):
        value = value()
    if value is None:
        return None
    return str(value)


def create_template_variables(project, *variable_maps):
    """
    Create the template variables for the Debian configuration files.

    :param project: A :class:`.Project` object.
    :param variable_maps: Zero or more dictionaries with additional variables.
                          Later dictionaries take precedence over earlier
                          dictionaries and all of them take precedence over
                          the variables derived from the project.
    :returns: A dictionary mapping variable names to strings (or
              :data:`None` for variables without a value).
    """
    version = project.version
    variables = dict(
        project_group=project.group,
        project_name=project.name,
        project_version=str(version),
        project_semantic_version=version.core_version,
        project_build_number=version.build_number,
        project_build_date=version.build_date_text,
        project_build_year=get_build_year(version),
        project_changelog_date=get_changelog_date(version),
        project_branch=version.branch,
        project_commit=version.commit,
        project_root_dir=project.root_directory,
        project_dir=project.directory,
        project_build_dir=project.build_directory,
        project_organization=project.organization,
        project_license=project.license,
    )
    for name, directory in project.resource_dirs.items():
        variables['project_%s_resources_dir' % name] = directory
    for mapping in variable_maps:
        for name, value in (mapping or {}).items():
            variables[name] = stringize(value)
    return variables


def create_environment_variables(variables, package_name):
    """
    Create the environment variables for :man:`dpkg-buildpackage`.

    :param variables: The dictionary returned by :func:`create_template_variables()`.
    :param package_name: The name of the package from the control file (a string).
    :returns: A dictionary with upper case variable names. Variables without
              a value are left out.
    """
    environment = dict(variables)
    environment['PROJECT_PACKAGE_NAME'] = package_name
    environment['PROJECT_DEBIAN_DIR'] = 'debian/%s' % package_name
    return dict((name.upper(), value) for name, value in environment.items() if value is not None)


def render_template(source, target, variables):
    """
    Render a template file.

    :param source: The pathname of the template (a string).
    :param target: The pathname of the file to create (a string). When the
                   file exists it is overwritten.
    :param variables: A dictionary with template variables. Variables whose
                      value is :data:`None` are treated as undefined.
    :raises: :exc:`jinja2.TemplateError` when the template can't be parsed
             or refers to an undefined variable.
    """
    logger.debug("Rendering %s to %s ..", format_path(source), format_path(target))
    environment = Environment(
        loader=FileSystemLoader(os.path.dirname(os.path.abspath(source)), encoding=TEMPLATE_ENCODING),
        undefined=StrictUndefined,
        keep_trailing_newline=True,
        autoescape=False,
    )
    template = environment.get_template(os.path.basename(source))
    context = dict((name, value) for name, value in variables.items() if value is not None)
    text = template.render(context)
    makedirs(os.path.dirname(target))
    with open(target, 'w', encoding=TEMPLATE_ENCODING) as handle:
        handle.write(text)
