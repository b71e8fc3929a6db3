"""
Tunable values for a transport. The defaults follow the ESC/VP21 serial line and the timings the projectors need;
they can be overridden from layered configuration files with configure().
"""
import os

from escvp21.config.config import apply_conf_path, load_config
from escvp21.protocol.commands import DEFAULT_TIMEOUT, PROBE_TIMEOUT

# the directory holding the packaged schema
schema_directory = os.path.join(os.path.dirname(__file__), 'config')


class TransportSettings:
    baudrate = 19200
    bytesize = 8
    parity = 'N'
    stopbits = 1

    command_timeout = DEFAULT_TIMEOUT
    command_attempts = 3

    sync_attempts = 3
    sync_pause = 2
    probe_timeout = PROBE_TIMEOUT

    backoff_initial_delay = 0.1
    backoff_max_delay = 60
    backoff_factor = 2

    def __init__(self, **overrides):
        for k, v in overrides.items():
            if not hasattr(self, k):
                raise AttributeError("unknown transport setting '%s'" % k)
            setattr(self, k, v)

    def serial_kwargs(self):
        """ the keyword arguments for serial.Serial """
        return {
            'baudrate': self.baudrate,
            'bytesize': self.bytesize,
            'parity': self.parity,
            'stopbits': self.stopbits,
        }


def configure(settings: TransportSettings, name='transport', directory=None, user_directory='~'):
    """
    Applies the [transport] section of the configuration files called `name` to the settings.
    See escvp21.config.config.load_config for the files read and their precedence.

    :param directory: where to look for the configuration files. Defaults to the working directory.
    :return: the settings
    """
    conf = load_config(name, directory or os.getcwd(), schema_directory, user_directory)
    apply_conf_path(conf, ['transport'], settings)
    return settings
