# Debian package builder: Automated tests.
#
# Author: C Thing Software
# Last Change: October 19, 2026
# URL: https://github.com/baron1405/deb-pkg-builder

"""Test suite for the `deb-pkg-builder` package."""

# Standard library modules.
import base64
import datetime
import functools
import logging
import os
import re
import shutil
import stat
import tempfile

# External dependencies.
import jinja2
import responses
from capturer import CaptureOutput
from executor import ExternalCommandFailed, execute, which
from humanfriendly.testing import PatchedAttribute, TestCase, run_cli, touch
from humanfriendly.text import dedent

# Modules included in our package.
from deb_pkg_builder import builder, config
from deb_pkg_builder.builder import DebianBuild, StagedBuild
from deb_pkg_builder.cli import main
from deb_pkg_builder.config import load_config, load_config_files, split_list
from deb_pkg_builder.control import (
    ControlFile,
    check_mandatory_fields,
    create_control_file,
    load_control_file,
    merge_control_fields,
    normalize_control_field_name,
    patch_control_file,
)
from deb_pkg_builder.deb822 import Deb822, dump_deb822, parse_deb822, parse_paragraphs
from deb_pkg_builder.package import (
    build_package,
    clean_package_tree,
    inspect_package,
    parse_filename,
    update_conffiles,
)
from deb_pkg_builder.project import (
    NO_VERSION,
    Project,
    ProjectVersion,
    get_build_year,
    get_changelog_date,
    load_project,
)
from deb_pkg_builder.publish import (
    PublishError,
    Repository,
    default_repository_url,
    load_repository,
    publish_packages,
)
from deb_pkg_builder.template import (
    create_environment_variables,
    create_template_variables,
    render_template,
    stringize,
)
from deb_pkg_builder.tools import (
    DEFAULT_LINTIAN_TAGS,
    DPKG_BUILDPACKAGE_TOOL,
    DPKG_DEB_TOOL,
    DPKG_GENCONTROL_TOOL,
    LINTIAN_TOOL,
    MissingToolsError,
    ensure_tools_exist,
    lintian_command,
    tools_exist,
)
from deb_pkg_builder.utils import (
    ResourceLockedException,
    atomic_lock,
    copy_directory,
    makedirs,
)

# Initialize a logger.
logger = logging.getLogger(__name__)

# Configuration defaults.
TEST_PACKAGE_NAME = 'deb-pkg-builder-demo'
TEST_PACKAGE_FIELDS = Deb822(
    Architecture='all',
    Description='Nothing to see here, move along',
    Maintainer='C Thing Software <dev@example.com>',
    Package=TEST_PACKAGE_NAME,
    Version='0.1',
    Section='misc',
    Priority='optional',
)
TEST_BUILD_DATE = datetime.datetime(2021, 11, 27, 19, 45, 24, tzinfo=datetime.timezone.utc)
TEST_REPOSITORY_URL = 'http://repo.example.com/api/deb/upload'

SOURCE_CONTROL_TEMPLATE = dedent('''
    Source: {{ project_name }}
    Maintainer: {{ project_organization }} <dev@example.com>
    Section: misc
    Priority: optional

    Package: {{ project_name }}
    Architecture: all
    Description: Demo package for {{ project_name }}
     Built from the {{ project_branch }} branch.
''').lstrip()

CHANGELOG_TEMPLATE = dedent('''
    {{ project_name }} ({{ project_version }}) unstable; urgency=low

      * Build {{ project_build_number }}.

     -- {{ project_organization }} <dev@example.com>  {{ project_changelog_date }}
''').lstrip()

COPYRIGHT_TEMPLATE = "Copyright {{ project_build_year }} {{ project_organization }} ({{ project_license }})\n"

RULES_FILE = "#!/usr/bin/make -f\n%:\n\tdh $@\n"


class DebPkgBuilderTestCase(TestCase):

    """Container for the `deb-pkg-builder` test suite."""

    def setUp(self):
        """Isolate the tests from configuration files and environment variables."""
        # Set up our superclass.
        super(DebPkgBuilderTestCase, self).setUp()
        self.config_directory = tempfile.mkdtemp()
        self.patches = [
            PatchedAttribute(config, 'system_config_directory', os.path.join(self.config_directory, 'system')),
            PatchedAttribute(config, 'user_config_directory', os.path.join(self.config_directory, 'user')),
            PatchedAttribute(config, 'REPOSITORY_URL', None),
            PatchedAttribute(config, 'REPOSITORY_USERNAME', None),
            PatchedAttribute(config, 'REPOSITORY_PASSWORD', None),
        ]
        for patch in self.patches:
            patch.__enter__()

    def tearDown(self):
        """Restore the patched configuration."""
        for patch in reversed(self.patches):
            patch.__exit__()
        shutil.rmtree(self.config_directory)
        # Tear down our superclass.
        super(DebPkgBuilderTestCase, self).tearDown()

    def test_makedirs(self):
        """Test that makedirs() can deal with race conditions."""
        with Context() as finalizers:
            parent = finalizers.mkdtemp()
            child = os.path.join(parent, 'nested')
            # This will create the directory.
            assert makedirs(child) is True
            # This should not complain that the directory already exists.
            assert makedirs(child) is False

    def test_copy_directory(self):
        """Test recursive copying of directories (including symbolic links)."""
        with Context() as finalizers:
            source = finalizers.mkdtemp()
            target = os.path.join(finalizers.mkdtemp(), 'copy')
            touch(os.path.join(source, 'nested', 'file.txt'))
            os.symlink('nested/file.txt', os.path.join(source, 'link'))
            copy_directory(source, target)
            assert os.path.isfile(os.path.join(target, 'nested', 'file.txt'))
            assert os.path.islink(os.path.join(target, 'link'))
            assert os.readlink(os.path.join(target, 'link')) == 'nested/file.txt'

    def test_atomic_lock(self):
        """Test that a locked resource can't be locked twice."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            with atomic_lock(directory):
                with self.assertRaises(ResourceLockedException):
                    with atomic_lock(directory, wait=False):
                        pass
            # The lock was released.
            with atomic_lock(directory, wait=False):
                pass

    def test_parse_plain(self):
        """Test parsing of fields and continuation lines."""
        fields = parse_deb822(dedent('''
            Key1: Value1
            Key2: Value2
             Value2.1
             Value2.2
            Key3: Value3
        '''))
        assert fields['Key1'] == 'Value1'
        assert fields['Key2'] == 'Value2\nValue2.1\nValue2.2'
        assert fields['Key3'] == 'Value3'

    def test_parse_with_comments(self):
        """Test that comment lines are ignored, even between continuation lines."""
        fields = parse_deb822(dedent('''
            Key1: Value1
            Key2: Value2
             Value2.1
            # Value2.2
            #Key3: Value3comment
            Key3: Value3
            # Value3.1
             Value3.2
            Key4: Value4
            # Value4.1
            # Value4.2
            #Key5: Value5
        '''))
        assert fields['Key1'] == 'Value1'
        assert fields['Key2'] == 'Value2\nValue2.1'
        assert fields['Key3'] == 'Value3\nValue3.2'
        assert fields['Key4'] == 'Value4'
        assert fields.get('Key5') is None

    def test_parse_with_empty_lines(self):
        """Test that empty lines are ignored."""
        fields = parse_deb822("Key1: Value1\nKey2: Value2\n\n")
        assert fields == Deb822(Key1='Value1', Key2='Value2')

    def test_parse_with_bad_field(self):
        """Test that a line without a delimiter is reported."""
        self.assertRaises(ValueError, parse_deb822, "Key1 Value1\nKey2: Value2\n")
        with self.assertRaises(ValueError) as context:
            parse_deb822("Key1 Value1\n", filename='/tmp/control')
        assert '/tmp/control' in str(context.exception)
        assert 'line 1' in str(context.exception)

    def test_parse_continuation_without_key(self):
        """Test that a continuation line at the start of a paragraph is reported."""
        self.assertRaises(ValueError, parse_deb822, " Value0\nKey1: Value1\n")

    def test_parse_blank_line_marker(self):
        """Test that continuation lines containing only a dot are converted to empty lines."""
        fields = parse_deb822(b"Description: Short\n Long\n .\n More\n")
        assert fields['Description'] == 'Short\nLong\n\nMore'

    def test_parse_case_insensitive(self):
        """Test that field names are case insensitive."""
        fields = parse_deb822("Package: demo\n")
        assert fields['package'] == 'demo'
        assert fields['PACKAGE'] == 'demo'

    def test_parse_unicode(self):
        """Test parsing of UTF-8 encoded control files."""
        fields = parse_deb822(u'Maintainer: René Maïtre\n'.encode('UTF-8'))
        assert fields['Maintainer'] == u'René Maïtre'

    def test_parse_paragraphs(self):
        """Test that paragraphs can be parsed separately and are merged otherwise."""
        text = "Source: demo\nSection: misc\n\nPackage: demo-bin\nSection: utils\n"
        paragraphs = parse_paragraphs(text)
        assert len(paragraphs) == 2
        assert paragraphs[0]['Source'] == 'demo'
        assert paragraphs[1]['Package'] == 'demo-bin'
        merged = parse_deb822(text)
        assert merged['Source'] == 'demo'
        assert merged['Package'] == 'demo-bin'
        assert merged['Section'] == 'utils'

    def test_dump_deb822(self):
        """Test formatting of multi-line values."""
        text = dump_deb822(Deb822([('Package', 'demo'), ('Description', 'Short\nLong\n\nMore')]))
        assert text == "Package: demo\nDescription: Short\n Long\n .\n More\n"
        assert parse_deb822(text)['Description'] == 'Short\nLong\n\nMore'

    def test_dump_deb822_trailing_empty_lines(self):
        """Test that trailing empty lines in multi-line values survive formatting."""
        fields = parse_deb822("Description: Short\n Long\n .\n")
        assert fields['Description'] == 'Short\nLong\n'
        text = dump_deb822(fields)
        assert text == "Description: Short\n Long\n .\n"
        assert parse_deb822(text) == fields
        assert dump_deb822(Deb822(Description='a\n\n')) == "Description: a\n .\n .\n"

    def test_parse_unicode_line_separators(self):
        """Test that only newlines and carriage returns end a line."""
        fields = parse_deb822(u"Description: Short\u2028more text\nPackage: demo\n".encode('UTF-8'))
        assert fields['Description'] == u"Short\u2028more text"
        assert fields['Package'] == 'demo'
        fields = parse_deb822("Key1: a\x0cb\r\nKey2: c\rKey3: d\n")
        assert fields['Key1'] == 'a\x0cb'
        assert fields['Key2'] == 'c'
        assert fields['Key3'] == 'd'

    def test_control_file_empty(self):
        """Test a control file without fields."""
        control = ControlFile()
        assert control.package is None
        assert control.version is None
        assert control.architecture is None
        self.assertRaises(ValueError, getattr, control, 'package_filename')

    def test_control_file_fields(self):
        """Test the fields that determine the package filename."""
        control = ControlFile()
        control['Package'] = 'pkg'
        control['Version'] = '1.2.3'
        control['Architecture'] = 'amd64'
        control['  '] = 'ignored'
        assert control.package == 'pkg'
        assert control.version == '1.2.3'
        assert control.architecture == 'amd64'
        assert control.package_filename == 'pkg_1.2.3_amd64.deb'
        assert str(control) == 'pkg_1.2.3_amd64.deb'
        assert len(control) == 3

    def test_control_field_merging(self):
        """Test merging of control fields."""
        defaults = {'Package': 'demo', 'version': '1.0', 'Depends': 'python3'}
        merged = merge_control_fields(defaults, {'Version': '2.0', 'depends': '', 'installed-size': 42})
        assert list(merged.keys()) == ['Package', 'Version', 'Installed-Size']
        assert merged['Version'] == '2.0'
        assert merged['Installed-Size'] == '42'
        assert 'Depends' not in merged
        assert normalize_control_field_name('md5sum') == 'MD5sum'

    def test_control_file_creation(self):
        """Test creation of control files."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            control_file = os.path.join(directory, 'DEBIAN', 'control')
            self.assertRaises(ValueError, create_control_file, control_file, {'Package': 'demo'})
            create_control_file(control_file, {
                'Package': TEST_PACKAGE_NAME,
                'Version': '1',
                'Description': 'Demo',
                'Maintainer': 'Nobody',
            })
            control = load_control_file(control_file)
            assert control.package_filename == '%s_1_all.deb' % TEST_PACKAGE_NAME
            assert control['Priority'] == 'optional'
            assert control['Section'] == 'misc'

    def test_control_file_patching_and_loading(self):
        """Test patching and loading of control files."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            control_file = os.path.join(directory, 'control')
            with open(control_file, 'wb') as handle:
                TEST_PACKAGE_FIELDS.dump(handle)
            patch_control_file(control_file, {'Version': '0.2', 'Installed-Size': '12'})
            control = load_control_file(control_file)
            assert control.version == '0.2'
            assert control['Installed-Size'] == '12'
            check_mandatory_fields(control)
            del control['Maintainer']
            self.assertRaises(ValueError, check_mandatory_fields, control)

    def test_filename_parsing(self):
        """Test filename parsing."""
        # Test the happy path.
        filename = '/var/cache/apt/archives/python3.9_3.9.2-1_amd64.deb'
        components = parse_filename(filename)
        assert components.filename == filename
        assert components.name == 'python3.9'
        assert components.version == '3.9.2-1'
        assert components.architecture == 'amd64'
        assert components.basename == 'python3.9_3.9.2-1_amd64.deb'
        # Test the unhappy paths.
        self.assertRaises(ValueError, parse_filename, 'python3.9_3.9.2-1_amd64.not-a-deb')
        self.assertRaises(ValueError, parse_filename, 'python3.9.deb')

    def test_clean_package_tree(self):
        """Test that VCS directories and editor leftovers are removed."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            makedirs(os.path.join(directory, 'usr', '.git', 'objects'))
            touch(os.path.join(directory, 'usr', 'lib', 'module.pyc'))
            touch(os.path.join(directory, 'usr', 'lib', 'module.py'))
            touch(os.path.join(directory, 'usr', 'lib', 'module.py~'))
            clean_package_tree(directory)
            assert not os.path.exists(os.path.join(directory, 'usr', '.git'))
            assert os.listdir(os.path.join(directory, 'usr', 'lib')) == ['module.py']

    def test_update_conffiles(self):
        """Test that files in /etc are marked as configuration files."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            touch(os.path.join(directory, 'etc', 'demo.conf'))
            makedirs(os.path.join(directory, 'DEBIAN'))
            with open(os.path.join(directory, 'DEBIAN', 'conffiles'), 'w') as handle:
                handle.write('/etc/missing.conf\n')
            update_conffiles(directory)
            with open(os.path.join(directory, 'DEBIAN', 'conffiles')) as handle:
                assert handle.read().splitlines() == ['/etc/demo.conf']

    def test_stringize(self):
        """Test conversion of variable values to strings."""
        assert stringize('v1') == 'v1'
        assert stringize(123) == '123'
        assert stringize(lambda: 1234) == '1234'
        assert stringize(None) is None
        assert stringize(lambda: None) is None

    def test_project_version(self):
        """Test release and snapshot version strings."""
        release = ProjectVersion('1.2.3', 'release', build_date=TEST_BUILD_DATE)
        assert release.is_release_build
        assert str(release) == '1.2.3'
        assert release.build_number == '20211127194524'
        assert release.build_date_text == '2021-11-27T19:45:24Z'
        snapshot = ProjectVersion('1.2.3', build_number='42')
        assert not snapshot.is_release_build
        assert str(snapshot) == '1.2.3-42'
        assert re.match(r'^\d{14}$', ProjectVersion('1.0').build_number)
        self.assertRaises(ValueError, ProjectVersion, '1.0', 'nightly')
        assert str(NO_VERSION) == '0.0.0'

    def test_changelog_date(self):
        """Test formatting of the build date for changelogs."""
        version = ProjectVersion('1.2.3', build_date=TEST_BUILD_DATE)
        assert get_changelog_date(version) == 'Sat, 27 Nov 2021 19:45:24 +0000'
        assert get_build_year(version) == '2021'
        # Naive timestamps are interpreted as UTC.
        naive = ProjectVersion('1.2.3', build_date=datetime.datetime(2021, 11, 27, 19, 45, 24))
        assert get_changelog_date(naive) == get_changelog_date(version)

    def test_project_defaults(self):
        """Test the default directories and metadata of a project."""
        project = Project('demo', '/srv/demo')
        assert project.root_directory == '/srv/demo'
        assert project.build_directory == '/srv/demo/build'
        assert project.distributions_directory == '/srv/demo/build/distributions'
        assert project.organization == config.DEFAULT_ORGANIZATION
        assert project.license == 'Internal'
        assert project.version is NO_VERSION

    def test_config_loading(self):
        """Test that later configuration files override earlier ones."""
        with Context() as finalizers:
            project_directory = finalizers.mkdtemp()
            write_file(os.path.join(config.user_config_directory, config.config_file_name), '''
                [repository]
                url = http://user.example.com/
                username = user

                [variables]
                Vendor = Acme
            ''')
            write_file(os.path.join(project_directory, config.config_file_name), '''
                [repository]
                url = http://project.example.com/
            ''')
            options = load_config(project_directory)
            assert options['repository']['url'] == 'http://project.example.com/'
            assert options['repository']['username'] == 'user'
            # Option names are case sensitive.
            assert options['variables'] == {'Vendor': 'Acme'}
            assert load_config_files('/nonexistent/file.ini') == {}
        assert split_list('tag-one, tag-two\n tag-three') == ['tag-one', 'tag-two', 'tag-three']
        assert split_list(None) == []

    def test_load_project(self):
        """Test loading project metadata from a configuration file."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            write_file(os.path.join(directory, config.config_file_name), '''
                [project]
                name = demo
                group = com.example
                version = 1.2.3
                build-type = release
                branch = main
                organization = Acme
                build-dir = out

                [resources]
                main = src/main/resources
            ''')
            project = load_project(directory)
            assert project.name == 'demo'
            assert project.group == 'com.example'
            assert str(project.version) == '1.2.3'
            assert project.version.branch == 'main'
            assert project.organization == 'Acme'
            assert project.build_directory == os.path.join(directory, 'out')
            assert project.resource_dirs == {'main': os.path.join(directory, 'src/main/resources')}
            # Without configuration the directory name and defaults are used.
            os.unlink(os.path.join(directory, config.config_file_name))
            project = load_project(directory)
            assert project.name == os.path.basename(directory)
            assert project.version is NO_VERSION

    def test_template_variables(self):
        """Test the standard template variables and their precedence."""
        project = create_test_project('/srv/demo')
        variables = create_template_variables(
            project,
            {'vendor': 'global', 'port': 8080},
            {'vendor': 'build', 'project_license': 'MIT', 'missing': lambda: None},
        )
        assert variables['project_group'] == 'com.example'
        assert variables['project_name'] == 'demo'
        assert variables['project_version'] == '1.2.3'
        assert variables['project_semantic_version'] == '1.2.3'
        assert variables['project_build_number'] == '20211127194524'
        assert variables['project_build_date'] == '2021-11-27T19:45:24Z'
        assert variables['project_build_year'] == '2021'
        assert variables['project_changelog_date'] == 'Sat, 27 Nov 2021 19:45:24 +0000'
        assert variables['project_branch'] == 'main'
        assert variables['project_commit'] == 'abc123'
        assert variables['project_root_dir'] == '/srv/demo'
        assert variables['project_dir'] == '/srv/demo'
        assert variables['project_build_dir'] == '/srv/demo/build'
        assert variables['project_organization'] == 'Acme'
        assert variables['project_main_resources_dir'] == '/srv/demo/src/main/resources'
        assert variables['vendor'] == 'build'
        assert variables['port'] == '8080'
        assert variables['project_license'] == 'MIT'
        assert variables['missing'] is None

    def test_environment_variables(self):
        """Test the environment variables passed to dpkg-buildpackage."""
        environment = create_environment_variables({'project_name': 'demo', 'custom': 'x', 'unset': None}, 'demo-bin')
        assert environment == {
            'PROJECT_NAME': 'demo',
            'CUSTOM': 'x',
            'PROJECT_PACKAGE_NAME': 'demo-bin',
            'PROJECT_DEBIAN_DIR': 'debian/demo-bin',
        }

    def test_render_template(self):
        """Test rendering of templates with strict undefined handling."""
        with Context() as finalizers:
            directory = finalizers.mkdtemp()
            source = os.path.join(directory, 'control.in')
            target = os.path.join(directory, 'output', 'control')
            write_file(source, "Package: {{ name }}\nMaintainer: {{ maintainer }}\n", dedent_text=False)
            render_template(source, target, {'name': u'demo', 'maintainer': u'René'})
            with open(target, encoding='UTF-8') as handle:
                assert handle.read() == u"Package: demo\nMaintainer: René\n"
            self.assertRaises(jinja2.UndefinedError, render_template, source, target, {'name': 'demo'})
            self.assertRaises(jinja2.UndefinedError, render_template, source, target,
                              {'name': 'demo', 'maintainer': None})

    def test_lintian_command(self):
        """Test the Lintian command line."""
        with PatchedAttribute(os, 'getuid', lambda: 1000):
            assert lintian_command('demo.deb', ['b-tag', 'a-tag', 'b-tag']) == [
                LINTIAN_TOOL, '--suppress-tags', 'a-tag', '--suppress-tags', 'b-tag', 'demo.deb',
            ]
        with PatchedAttribute(os, 'getuid', lambda: 0):
            assert lintian_command('demo.deb') == [LINTIAN_TOOL, '--allow-root', 'demo.deb']

    def test_missing_tools(self):
        """Test the error reported when the Debian packaging tools are missing."""
        assert not tools_exist(['/nonexistent/dpkg-buildpackage'])
        try:
            ensure_tools_exist(['/nonexistent/dpkg-buildpackage'])
            assert False, "Expected MissingToolsError to be raised!"
        except MissingToolsError as e:
            assert str(e) == "Could not find Debian packaging tools (e.g. /nonexistent/dpkg-buildpackage)"

    def test_debian_build(self):
        """Test the steps of a build from a ``debian`` directory."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            fake = FakeTools()
            build = DebianBuild(
                project, debian_dir,
                additional_variables={'custom_var': 'custom'},
                global_variables={'custom_var': 'global', 'shared_var': 'shared'},
                lintian_enable=True,
                lintian_tags=['build-tag'],
                global_lintian_tags=['global-tag'],
            )
            # Stale files in the working directory are removed.
            touch(os.path.join(build.working_dir, 'stale-file'))
            with fake.patch():
                package_file = build.run()
            assert package_file == os.path.join(project.distributions_directory, 'demo_1.2.3_all.deb')
            assert os.path.isfile(package_file)
            assert not os.path.exists(os.path.join(build.working_dir, 'stale-file'))
            # The templates were rendered.
            source_control = load_control_file(os.path.join(build.working_dir, 'debian', 'control'))
            assert source_control['Source'] == 'demo'
            assert source_control['Description'] == 'Demo package for demo\nBuilt from the main branch.'
            with open(os.path.join(build.working_dir, 'debian', 'copyright')) as handle:
                assert handle.read() == "Copyright 2021 Acme (Internal)\n"
            assert is_executable(os.path.join(build.working_dir, 'debian', 'rules'))
            # dpkg-buildpackage was run in the working directory.
            command, options = fake.calls[0]
            assert command == (DPKG_BUILDPACKAGE_TOOL, '--build=binary', '--no-sign')
            assert options['directory'] == build.working_dir
            environment = options['environment']
            assert environment['PROJECT_NAME'] == 'demo'
            assert environment['PROJECT_PACKAGE_NAME'] == 'demo'
            assert environment['PROJECT_DEBIAN_DIR'] == 'debian/demo'
            assert environment['CUSTOM_VAR'] == 'custom'
            assert environment['SHARED_VAR'] == 'shared'
            # Lintian checked the copied archive.
            archive, tags = fake.lintian_calls[0]
            assert archive == package_file
            assert tags == set(DEFAULT_LINTIAN_TAGS) | set(['build-tag', 'global-tag'])

    def test_debian_build_without_lintian(self):
        """Test that the Lintian check can be disabled."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            destination = finalizers.mkdtemp()
            working_dir = os.path.join(finalizers.mkdtemp(), 'work')
            fake = FakeTools()
            build = DebianBuild(project, debian_dir, destination_dir=destination,
                                working_dir=working_dir, lintian_enable=False)
            with fake.patch():
                package_file = build.run()
            assert package_file == os.path.join(destination, 'demo_1.2.3_all.deb')
            assert os.path.isfile(os.path.join(os.path.dirname(working_dir), 'demo_1.2.3_all.deb'))
            assert not fake.lintian_calls

    def test_debian_build_missing_tools(self):
        """Test that builds fail early when the Debian packaging tools are missing."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            missing = functools.partial(ensure_tools_exist, ['/nonexistent/dpkg-buildpackage'])
            with PatchedAttribute(builder, 'ensure_tools_exist', missing):
                self.assertRaises(MissingToolsError, DebianBuild(project, debian_dir).run)

    def test_debian_build_undefined_variable(self):
        """Test that templates referring to undefined variables fail the build."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            write_file(os.path.join(debian_dir, 'copyright'), "{{ no_such_variable }}\n", dedent_text=False)
            fake = FakeTools()
            with fake.patch():
                self.assertRaises(jinja2.UndefinedError, DebianBuild(project, debian_dir).run)
            assert not fake.calls

    def test_debian_build_without_package_field(self):
        """Test that a source control file without a Package field is reported."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            write_file(os.path.join(debian_dir, 'control'), "Source: {{ project_name }}\n", dedent_text=False)
            fake = FakeTools()
            with fake.patch():
                with self.assertRaises(ValueError) as context:
                    DebianBuild(project, debian_dir).run()
            assert os.path.join('debian', 'control') in str(context.exception)
            assert not fake.calls

    def test_debian_build_failure(self):
        """Test that failing packaging tools fail the build."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            fake = FakeTools(fail=True)
            with fake.patch():
                self.assertRaises(ExternalCommandFailed, DebianBuild(project, debian_dir).run)

    def test_debian_build_artifacts(self):
        """Test that the package archive can be determined without building it."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            debian_dir = create_debian_dir(finalizers.mkdtemp())
            fake = FakeTools()
            build = DebianBuild(project, debian_dir)
            with fake.patch():
                artifacts = build.artifacts()
            assert artifacts == set([os.path.join(project.distributions_directory, 'demo_1.2.3_all.deb')])
            command, options = fake.calls[0]
            assert command == (DPKG_GENCONTROL_TOOL, '-ObinaryControl')
            assert os.path.basename(options['directory']).startswith('ctrl')
            # The temporary directory was cleaned up.
            assert not os.path.exists(options['directory'])

    def test_staged_build(self):
        """Test assembling a package tree from individual files."""
        with Context() as finalizers:
            project = create_test_project(finalizers.mkdtemp())
            sources = finalizers.mkdtemp()
            write_file(os.path.join(sources, 'control'), '''
                Package: {{ project_name }}
                Version: {{ project_version }}
                Architecture: all
                Maintainer: {{ project_organization }}
                Description: Staged demo package
            ''')
            write_file(os.path.join(sources, 'conffiles'), "/etc/demo/demo.conf\n", dedent_text=False)
            write_file(os.path.join(sources, 'postinst'), "#!/bin/sh\nexit 0\n", dedent_text=False)
            write_file(os.path.join(sources, 'demo.conf'), "enabled = yes\n", dedent_text=False)
            touch(os.path.join(sources, 'lib', 'demo.jar'))
            built = []

            def fake_build_package(directory, **options):
                built.append((directory, options))
                return os.path.join(options['repository'], 'demo_1.2.3_all.deb')

            build = StagedBuild(
                project, os.path.join(sources, 'control'),
                files=[(os.path.join(sources, 'demo.conf'), '/etc/demo'),
                       (os.path.join(sources, 'lib'), 'usr/share/demo/lib')],
                conffiles_file=os.path.join(sources, 'conffiles'),
                scripts={'postinst': os.path.join(sources, 'postinst')},
                lintian_enable=False,
            )
            assert build.artifacts() == set([os.path.join(project.distributions_directory, 'demo_1.2.3_all.deb')])
            with PatchedAttribute(builder, 'ensure_tools_exist', lambda *args, **kw: None):
                with PatchedAttribute(builder, 'build_package', fake_build_package):
                    package_file = build.run()
            assert package_file == os.path.join(project.distributions_directory, 'demo_1.2.3_all.deb')
            directory, options = built[0]
            assert options['check_package'] is False
            assert options['copy_files'] is False
            assert set(DEFAULT_LINTIAN_TAGS).issubset(options['suppress_tags'])
            control = load_control_file(os.path.join(directory, 'DEBIAN', 'control'))
            assert control.package_filename == 'demo_1.2.3_all.deb'
            assert control['Maintainer'] == 'Acme'
            assert os.path.isfile(os.path.join(directory, 'DEBIAN', 'conffiles'))
            assert is_executable(os.path.join(directory, 'DEBIAN', 'postinst'))
            assert os.path.isfile(os.path.join(directory, 'etc', 'demo', 'demo.conf'))
            assert os.path.isfile(os.path.join(directory, 'usr', 'share', 'demo', 'lib', 'demo.jar'))

    def test_staged_build_unknown_script(self):
        """Test that unknown maintainer scripts are rejected."""
        project = create_test_project('/srv/demo')
        self.assertRaises(ValueError, StagedBuild, project, '/srv/demo/control', scripts={'install': '/tmp/x'})

    def test_package_building(self):
        """Test building of Debian binary packages with ``dpkg-deb --build``."""
        if not package_building_supported():
            return self.skipTest("dpkg-deb and fakeroot (or root) are required")
        with Context() as finalizers:
            build_directory = finalizers.mkdtemp()
            repository = finalizers.mkdtemp()
            create_control_file(os.path.join(build_directory, 'DEBIAN', 'control'), TEST_PACKAGE_FIELDS)
            touch(os.path.join(build_directory, 'etc', 'demo.conf'))
            makedirs(os.path.join(build_directory, 'tmp', '.git'))
            package_file = build_package(build_directory, repository, check_package=False)
            assert package_file == os.path.join(repository, '%s_0.1_all.deb' % TEST_PACKAGE_NAME)
            fields, contents = inspect_package(package_file)
            for name in TEST_PACKAGE_FIELDS:
                assert fields[name] == TEST_PACKAGE_FIELDS[name]
            assert 'Installed-Size' in fields
            assert contents['/'].permissions[1:] == 'rwxr-xr-x'
            assert contents['/'].owner == 'root'
            assert '/etc/demo.conf' in contents
            assert '/tmp/.git/' not in contents
            assert get_conffiles(package_file) == ['/etc/demo.conf']

    def test_default_repository_url(self):
        """Test the choice between the release and snapshot repositories."""
        release = ProjectVersion('1.0', 'release')
        snapshot = ProjectVersion('1.0', 'snapshot')
        assert default_repository_url(release, 'http://candidates/', 'http://snapshots/') == 'http://candidates/'
        assert default_repository_url(snapshot, 'http://candidates/', 'http://snapshots/') == 'http://snapshots/'

    def test_load_repository(self):
        """Test loading the repository configuration."""
        options = {'repository': {
            'release-url': 'http://candidates.example.com/',
            'snapshot-url': 'http://snapshots.example.com/',
            'username': 'user',
            'timeout': '60',
        }}
        repository = load_repository(options, ProjectVersion('1.0', 'release'))
        assert repository.url == 'http://candidates.example.com/'
        assert repository.auth is None
        assert repository.timeout == 60
        with PatchedAttribute(config, 'REPOSITORY_PASSWORD', 'secret'):
            repository = load_repository(options, ProjectVersion('1.0'))
            assert repository.url == 'http://snapshots.example.com/'
            assert repository.auth == ('user', 'secret')
        repository = load_repository({}, NO_VERSION)
        assert repository.url is None
        assert repository.timeout == config.REPOSITORY_TIMEOUT

    def test_publish_without_url(self):
        """Test that publishing without a repository URL does nothing."""
        with CaptureOutput(merged=True) as capturer:
            assert publish_packages(['/nonexistent/demo_1.0_all.deb'], Repository()) == []
            assert "Repository URL not defined, publish is a noop" in capturer.get_text()

    def test_publish_local(self):
        """Test publishing to a ``file:`` URL."""
        with Context() as finalizers:
            archive = os.path.join(finalizers.mkdtemp(), 'demo_1.0_all.deb')
            write_file(archive, "new contents", dedent_text=False)
            repository = os.path.join(finalizers.mkdtemp(), 'nested', 'repo')
            makedirs(repository)
            write_file(os.path.join(repository, 'demo_1.0_all.deb'), "old contents", dedent_text=False)
            published = publish_packages([archive], Repository(url='file://' + repository))
            assert published == [os.path.join(repository + '/', 'demo_1.0_all.deb')]
            with open(os.path.join(repository, 'demo_1.0_all.deb')) as handle:
                assert handle.read() == "new contents"

    def test_publish_http(self):
        """Test publishing using an HTTP POST request with basic authentication."""
        with Context() as finalizers:
            archive = os.path.join(finalizers.mkdtemp(), 'demo_1.0_all.deb')
            write_file(archive, "archive contents", dedent_text=False)
            repository = Repository(url=TEST_REPOSITORY_URL, username='user', password='secret')
            with responses.RequestsMock() as mock:
                mock.add(responses.POST, TEST_REPOSITORY_URL + '/', status=201)
                assert publish_packages([archive], repository) == [TEST_REPOSITORY_URL + '/']
                request = mock.calls[0].request
                assert request.headers['Content-Type'] == 'multipart/form-data'
                expected = base64.b64encode(b'user:secret').decode('ascii')
                assert request.headers['Authorization'] == 'Basic %s' % expected

    def test_publish_http_without_password(self):
        """Test that authentication is skipped unless both username and password are known."""
        with Context() as finalizers:
            archive = os.path.join(finalizers.mkdtemp(), 'demo_1.0_all.deb')
            touch(archive)
            with responses.RequestsMock() as mock:
                mock.add(responses.POST, TEST_REPOSITORY_URL + '/', status=200)
                publish_packages([archive], Repository(url=TEST_REPOSITORY_URL + '/', username='user'))
                assert 'Authorization' not in mock.calls[0].request.headers

    def test_publish_http_error(self):
        """Test that rejected uploads are reported."""
        with Context() as finalizers:
            archive = os.path.join(finalizers.mkdtemp(), 'demo_1.0_all.deb')
            touch(archive)
            with responses.RequestsMock() as mock:
                mock.add(responses.POST, TEST_REPOSITORY_URL + '/', status=403)
                with self.assertRaises(PublishError) as context:
                    publish_packages([archive], Repository(url=TEST_REPOSITORY_URL))
            assert str(context.exception) == "Unable to upload file `%s' - HTTP status 403" % archive

    def test_cli_usage(self):
        """Test the usage message of the command line interface."""
        returncode, output = run_cli(main, '--help')
        assert returncode == 0
        assert 'Usage: deb-pkg-builder' in output
        returncode, output = run_cli(main)
        assert returncode == 0
        assert 'Usage: deb-pkg-builder' in output

    def test_cli_errors(self):
        """Test that invalid command line arguments are reported."""
        returncode, output = run_cli(main, '--build', '/a/directory/that/will/never/exist')
        assert returncode == 1
        returncode, output = run_cli(main, '--define', 'no-delimiter')
        assert returncode == 1
        returncode, output = run_cli(main, '/tmp/demo_1.0_all.deb')
        assert returncode == 1
        returncode, output = run_cli(main, '--artifacts', '--publish', merged=True)
        assert returncode == 1
        assert "can't be combined" in output

    def test_cli_artifacts(self):
        """Test ``deb-pkg-builder --stage=DIR --artifacts``."""
        with Context() as finalizers:
            build_directory = finalizers.mkdtemp()
            output_directory = finalizers.mkdtemp()
            create_control_file(os.path.join(build_directory, 'DEBIAN', 'control'), TEST_PACKAGE_FIELDS)
            returncode, output = run_cli(main, '--stage', build_directory, '--artifacts', '--output', output_directory)
            assert returncode == 0
            expected = os.path.join(output_directory, '%s_0.1_all.deb' % TEST_PACKAGE_NAME)
            assert expected in output.splitlines()

    def test_cli_publish(self):
        """Test ``deb-pkg-builder --publish --repository=URL ARCHIVE``."""
        with Context() as finalizers:
            archive = os.path.join(finalizers.mkdtemp(), 'demo_1.0_all.deb')
            touch(archive)
            repository = finalizers.mkdtemp()
            returncode, output = run_cli(main, '--publish', '--repository=file://%s' % repository, archive)
            assert returncode == 0
            assert os.path.isfile(os.path.join(repository, 'demo_1.0_all.deb'))

    def test_cli_inspect(self):
        """Test ``deb-pkg-builder --inspect=FILE``."""
        if not package_building_supported():
            return self.skipTest("dpkg-deb and fakeroot (or root) are required")
        with Context() as finalizers:
            build_directory = finalizers.mkdtemp()
            create_control_file(os.path.join(build_directory, 'DEBIAN', 'control'), TEST_PACKAGE_FIELDS)
            package_file = build_package(build_directory, finalizers.mkdtemp(), check_package=False)
            returncode, output = run_cli(main, '--verbose', '--inspect', package_file)
            assert returncode == 0
            lines = output.splitlines()
            for field, value in TEST_PACKAGE_FIELDS.items():
                assert match('^ - %s: (.+)$' % field, lines) == value


class FakeTools(object):

    """Stand-in for the Debian packaging tools used by :mod:`deb_pkg_builder.builder`."""

    def __init__(self, fail=False):
        """Initialize a :class:`FakeTools` object."""
        self.fail = fail
        self.calls = []
        self.lintian_calls = []

    def patch(self):
        """Patch the external commands used by the builder module."""
        context = Context()
        for name, value in (('execute', self.execute),
                            ('ensure_tools_exist', lambda *args, **kw: None),
                            ('run_lintian', self.run_lintian)):
            patch = PatchedAttribute(builder, name, value)
            patch.__enter__()
            context.register(patch.__exit__)
        return context

    def execute(self, *command, **options):
        """Simulate the output of :man:`dpkg-buildpackage` and :man:`dpkg-gencontrol`."""
        self.calls.append((command, options))
        if self.fail:
            # Let a real command fail to get a realistic exception.
            execute('false', logger=logger)
        directory = options['directory']
        source_control = load_control_file(os.path.join(directory, 'debian', 'control'))
        fields = ControlFile(Package=source_control.package, Version='1.2.3', Architecture='all')
        if command[0] == DPKG_BUILDPACKAGE_TOOL:
            control_file = os.path.join(directory, 'debian', source_control.package, 'DEBIAN', 'control')
            makedirs(os.path.dirname(control_file))
            with open(control_file, 'wb') as handle:
                fields.dump(handle)
            touch(os.path.join(os.path.dirname(directory), fields.package_filename))
        elif command[0] == DPKG_GENCONTROL_TOOL:
            with open(os.path.join(directory, 'binaryControl'), 'wb') as handle:
                fields.dump(handle)

    def run_lintian(self, archive, suppress_tags=()):
        """Record the arguments of :func:`.run_lintian()`."""
        self.lintian_calls.append((archive, set(suppress_tags)))


def create_test_project(directory):
    """Create a :class:`.Project` with fixed metadata."""
    return Project(
        'demo', directory,
        group='com.example',
        version=ProjectVersion('1.2.3', 'release', build_date=TEST_BUILD_DATE, branch='main', commit='abc123'),
        organization='Acme',
        resource_dirs={'main': os.path.join(directory, 'src/main/resources')},
    )


def create_debian_dir(directory):
    """Create a ``debian`` template directory."""
    debian_dir = os.path.join(directory, 'debian')
    write_file(os.path.join(debian_dir, 'control'), SOURCE_CONTROL_TEMPLATE, dedent_text=False)
    write_file(os.path.join(debian_dir, 'changelog'), CHANGELOG_TEMPLATE, dedent_text=False)
    write_file(os.path.join(debian_dir, 'copyright'), COPYRIGHT_TEMPLATE, dedent_text=False)
    write_file(os.path.join(debian_dir, 'rules'), RULES_FILE, dedent_text=False)
    write_file(os.path.join(debian_dir, 'compat'), "12\n", dedent_text=False)
    os.chmod(os.path.join(debian_dir, 'rules'), stat.S_IRUSR | stat.S_IWUSR)
    return debian_dir


def write_file(filename, contents, dedent_text=True):
    """Create a text file (and its parent directories)."""
    makedirs(os.path.dirname(filename))
    if dedent_text:
        contents = dedent(contents).lstrip()
    with open(filename, 'w', encoding='UTF-8') as handle:
        handle.write(contents)


def is_executable(filename):
    """Check whether the owner of a file may execute it."""
    return bool(os.stat(filename).st_mode & stat.S_IXUSR)


def package_building_supported():
    """Check whether ``dpkg-deb --build`` can be used in this environment."""
    return os.path.exists(DPKG_DEB_TOOL) and (os.getuid() == 0 or bool(which('fakeroot')))


def get_conffiles(package_archive):
    """Use ``dpkg --info ... conffiles`` to inspect marked configuration files."""
    try:
        listing = execute('dpkg', '--info', package_archive, 'conffiles', capture=True, silent=True)
        return listing.splitlines()
    except ExternalCommandFailed:
        return []


def match(pattern, lines):
    """Get the regular expression match in an iterable of lines."""
    for line in lines:
        m = re.match(pattern, line)
        if m:
            return m.group(1)


class Context(object):

    """Context manager for simple and reliable finalizers."""

    def __init__(self):
        """Initialize a :class:`Context` object."""
        self.finalizers = []

    def __enter__(self):
        """Enter the context."""
        return self

    def __exit__(self, exc_type=None, exc_value=None, traceback=None):
        """Leave the context (running the finalizers)."""
        for finalizer in reversed(self.finalizers):
            finalizer()
        self.finalizers = []

    def register(self, *args, **kw):
        """Register a finalizer."""
        self.finalizers.append(functools.partial(*args, **kw))

    def mkdtemp(self, *args, **kw):
        """Create a temporary directory that will be cleaned up when the context ends."""
        directory = tempfile.mkdtemp(*args, **kw)
        self.register(shutil.rmtree, directory)
        return directory
