import os
import tempfile
import unittest

from hamcrest import assert_that, calling, is_, raises

from escvp21.settings import TransportSettings, configure


class TransportSettingsTest(unittest.TestCase):

    def test_defaults(self):
        sut = TransportSettings()
        assert_that(sut.command_timeout, is_(10))
        assert_that(sut.command_attempts, is_(3))
        assert_that(sut.sync_attempts, is_(3))
        assert_that(sut.sync_pause, is_(2))
        assert_that(sut.probe_timeout, is_(1))
        assert_that(sut.backoff_initial_delay, is_(0.1))
        assert_that(sut.backoff_max_delay, is_(60))
        assert_that(sut.serial_kwargs(), is_({'baudrate': 19200, 'bytesize': 8, 'parity': 'N', 'stopbits': 1}))

    def test_overrides(self):
        assert_that(TransportSettings(sync_pause=0).sync_pause, is_(0))
        assert_that(TransportSettings().sync_pause, is_(2))

    def test_unknown_override(self):
        assert_that(calling(TransportSettings).with_args(speed=1), raises(AttributeError))


class ConfigureTest(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.dir = self.tmp.name

    def tearDown(self):
        self.tmp.cleanup()

    def test_packaged_schema_supplies_defaults(self):
        sut = configure(TransportSettings(), directory=self.dir, user_directory=self.dir)
        assert_that(sut.baudrate, is_(19200))
        assert_that(sut.parity, is_('N'))
        assert_that(sut.command_timeout, is_(10.0))
        assert_that(sut.backoff_max_delay, is_(60.0))

    def test_configuration_file_is_applied_and_typed(self):
        with open(os.path.join(self.dir, 'transport.cfg'), 'w') as f:
            f.write("[transport]\nbaudrate = 9600\nsync_pause = 0.5\nparity = E\n")
        sut = configure(TransportSettings(), directory=self.dir, user_directory=self.dir)
        assert_that(sut.baudrate, is_(9600))
        assert_that(sut.sync_pause, is_(0.5))
        assert_that(sut.parity, is_('E'))
        assert_that(sut.command_attempts, is_(3))
