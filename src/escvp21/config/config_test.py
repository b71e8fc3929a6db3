import os
import tempfile
import unittest
from unittest.mock import Mock, patch

from configobj import ConfigObj, ConfigObjError
from hamcrest import assert_that, calling, equal_to, has_property, is_, is_not, raises

from escvp21.config.config import apply_conf, apply_conf_path, config_filename, config_flavor, fetch_conf_path, \
    load_config, load_config_file_base, map_os_name

schema = """
[device]
name = string(default='projector')
retries = integer(min=0, default=3)
"""


class ConfigTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name
        self.home = os.path.join(self.dir, 'home')
        os.mkdir(self.home)

    def tearDown(self):
        self.tmp.cleanup()

    def write(self, filename, text, directory=None):
        with open(os.path.join(directory or self.dir, filename), 'w') as f:
            f.write(text)

    def load(self, name='device'):
        return load_config(name, self.dir, user_directory=self.home)

    def test_config_flavor(self):
        assert_that(config_flavor('device'), is_('device'))
        assert_that(config_flavor('device', 'schema'), is_('device.schema'))
        assert_that(config_filename('device', 'dir'), is_(os.path.join('dir', 'device.cfg')))

    def test_config_file_not_found(self):
        assert_that(calling(load_config_file_base).with_args('blah'), raises(IOError))

    def test_config_file_optional(self):
        assert_that(load_config_file_base(os.path.join(self.dir, 'missing.cfg'), False), is_(ConfigObj()))

    def test_config_file_invalid_syntax(self):
        self.write('broken.cfg', '[[[section\n')
        assert_that(calling(load_config_file_base).with_args(os.path.join(self.dir, 'broken.cfg')),
                    raises(ConfigObjError, ".*broken.cfg"))

    def test_schema_supplies_defaults(self):
        self.write('device.schema.cfg', schema)
        config = self.load()
        assert_that(config['device']['name'], is_('projector'))
        assert_that(config['device']['retries'], is_(3))

    def test_layers_override_in_order(self):
        self.write('device.schema.cfg', schema)
        self.write('device.default.cfg', "[device]\nname = default\nretries = 1\n")
        self.write('device.cfg', "[device]\nretries = 7\n")
        config = self.load()
        assert_that(config['device']['name'], is_('default'))
        assert_that(config['device']['retries'], is_(7))

    def test_user_override(self):
        self.write('device.schema.cfg', schema)
        self.write('device.default.cfg', "[device]\nname = default\n")
        self.write('device.cfg', "[device]\nname = user\n", self.home)
        assert_that(self.load()['device']['name'], is_('user'))

    def test_platform_override(self):
        self.write('device.schema.cfg', schema)
        self.write('device.testos.cfg', "[device]\nretries = 9\n")
        with patch('escvp21.config.config.os_name', return_value='testos'):
            assert_that(self.load()['device']['retries'], is_(9))

    def test_config_file_fails_validation(self):
        self.write('device.schema.cfg', schema)
        self.write('device.cfg', "[device]\nretries = many\n")
        assert_that(calling(self.load), raises(ConfigObjError, "the config file device failed validation"))

    def test_no_schema_is_not_validated(self):
        self.write('device.cfg', "[device]\nretries = 2\n")
        assert_that(self.load()['device']['retries'], is_('2'))

    def test_map_os_name(self):
        assert_that(map_os_name('Windows'), is_('windows'))
        assert_that(map_os_name('Darwin'), is_('osx'))
        assert_that(map_os_name('darwin'), is_('osx'))

    def test_non_existent_config_path(self):
        assert_that(fetch_conf_path(ConfigObj(), ['abcd']), is_(None))

    def test_apply_conf_sets_known_attributes_only(self):
        class Target:
            retries = 0

        target = Target()
        apply_conf({'retries': 5, 'missing_value': 1}, target)
        assert_that(target.retries, is_(equal_to(5)))
        assert_that(target, is_not(has_property('missing_value')))

    def test_non_existent_apply_config_path(self):
        target = Mock(spec=[])
        apply_conf_path(ConfigObj(), ['abcd'], target)
        assert_that(target, is_not(has_property('abcd')))


if __name__ == '__main__':  # pragma no cover
    unittest.main()
