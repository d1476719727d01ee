# Debian package builder.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""
The top-level :mod:`deb_pkg_builder` module.

The :mod:`deb_pkg_builder` module defines the `deb-pkg-builder` version number
and the Debian packages that provide the external programs used to build,
check and inspect Debian binary packages.
"""

# Semi-standard module versioning.
__version__ = '1.0'

debian_package_dependencies = (
    'dpkg-dev',   # dpkg-buildpackage, dpkg-gencontrol
    'fakeroot',   # fakeroot
    'lintian',    # lintian
)
"""A tuple of strings with required Debian packages."""
