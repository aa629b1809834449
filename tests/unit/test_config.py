#!/usr/bin/env python3
"""
Configuration Tests

Precedence of command line, environment and dotenv values, and the
validation performed when building run settings.
"""
import os
import sys
import tempfile
import unittest
from argparse import Namespace

# Add the project root to the Python path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from config import OUTPUT_JSON, Configuration, ReportSettings, build_settings, missing_credentials
from error_handler import ConfigurationError


def make_args(**overrides):
    values = dict(url=None, username=None, password=None, datacenter=None, insecure=None,
                  output='text', log_level=None, log_format=None, log_file=None)
    values.update(overrides)
    return Namespace(**values)


class TestConfiguration(unittest.TestCase):
    """Environment and dotenv lookup."""

    def setUp(self):
        self.tempdir = tempfile.TemporaryDirectory()
        self.addCleanup(self.tempdir.cleanup)
        self.env_file = os.path.join(self.tempdir.name, '.env')

    def write_env_file(self, text):
        with open(self.env_file, 'w') as f:
            f.write(text)

    def test_defaults(self):
        configuration = Configuration(env_file=None, environ={})

        self.assertTrue(configuration.get_bool('VSPHERE_INSECURE'))
        self.assertEqual(configuration.get('LOG_LEVEL'), 'WARNING')
        self.assertIsNone(configuration.get('VSPHERE_URL'))

    def test_environment_wins_over_dotenv(self):
        self.write_env_file("VSPHERE_URL=https://from-file/sdk\nVSPHERE_USERNAME=file-user\n")

        configuration = Configuration(env_file=self.env_file, environ={'VSPHERE_URL': 'https://from-env/sdk'})

        self.assertEqual(configuration.get('VSPHERE_URL'), 'https://from-env/sdk')
        self.assertEqual(configuration.get('VSPHERE_USERNAME'), 'file-user')

    def test_unknown_dotenv_keys_are_ignored(self):
        self.write_env_file("REDIS_HOST=localhost\nVSPHERE_DATACENTER=DC01\n")

        configuration = Configuration(env_file=self.env_file, environ={})

        self.assertIsNone(configuration.get('REDIS_HOST'))
        self.assertEqual(configuration.get('VSPHERE_DATACENTER'), 'DC01')

    def test_missing_dotenv_file_is_fine(self):
        configuration = Configuration(env_file=os.path.join(self.tempdir.name, 'absent.env'), environ={})

        self.assertIsNone(configuration.get('VSPHERE_URL'))

    def test_boolean_values(self):
        for raw, expected in (('true', True), ('YES', True), ('1', True), ('false', False), ('no', False),
                              ('0', False), ('maybe', None)):
            configuration = Configuration(env_file=None, environ={'VSPHERE_INSECURE': raw})
            self.assertEqual(configuration.get_bool('VSPHERE_INSECURE'), expected, raw)

    def test_password_masked_in_group(self):
        configuration = Configuration(env_file=None, environ={'VSPHERE_PASSWORD': 'hunter2'})

        self.assertEqual(configuration.get_group('vsphere', masked=True)['VSPHERE_PASSWORD'], '********')
        self.assertEqual(configuration.get_group('vsphere')['VSPHERE_PASSWORD'], 'hunter2')
        self.assertEqual(configuration.get_group('redis'), {})


class TestBuildSettings(unittest.TestCase):
    """Command line overlay and validation."""

    def setUp(self):
        self.configuration = Configuration(env_file=None, environ={
            'VSPHERE_URL': 'https://vc.example.com/sdk',
            'VSPHERE_USERNAME': 'env-user',
            'VSPHERE_PASSWORD': 'env-pass',
        })

    def test_values_from_environment(self):
        settings = build_settings(make_args(), self.configuration)

        self.assertEqual(settings.url, 'https://vc.example.com/sdk')
        self.assertEqual(settings.username, 'env-user')
        self.assertEqual(settings.password, 'env-pass')
        self.assertIsNone(settings.datacenter)
        self.assertTrue(settings.insecure)
        self.assertFalse(settings.output_json)

    def test_flags_win_over_environment(self):
        settings = build_settings(make_args(username='flag-user', datacenter='DC01', output=OUTPUT_JSON),
                                  self.configuration)

        self.assertEqual(settings.username, 'flag-user')
        self.assertEqual(settings.datacenter, 'DC01')
        self.assertTrue(settings.output_json)

    def test_insecure_flag_can_be_turned_off(self):
        settings = build_settings(make_args(insecure=False), self.configuration)

        self.assertFalse(settings.insecure)

    def test_insecure_falls_back_to_environment(self):
        configuration = Configuration(env_file=None, environ={
            'VSPHERE_URL': 'vc', 'VSPHERE_USERNAME': 'u', 'VSPHERE_PASSWORD': 'p', 'VSPHERE_INSECURE': 'false'
        })

        self.assertFalse(build_settings(make_args(), configuration).insecure)

    def test_missing_credentials(self):
        configuration = Configuration(env_file=None, environ={'VSPHERE_USERNAME': 'env-user'})

        self.assertEqual(missing_credentials(make_args(), configuration), ['url', 'password'])
        with self.assertRaises(ConfigurationError) as ctx:
            build_settings(make_args(), configuration)
        self.assertEqual(str(ctx.exception), "Must specify vSphere URL, username, and password")
        self.assertEqual(ctx.exception.details['missing'], ['url', 'password'])

    def test_empty_value_counts_as_missing(self):
        configuration = Configuration(env_file=None, environ={})

        self.assertEqual(missing_credentials(make_args(url='vc', username='', password='p'), configuration),
                         ['username'])

    def test_unsupported_output(self):
        with self.assertRaises(ConfigurationError):
            build_settings(make_args(output='yaml'), self.configuration)

    def test_log_level_upper_cased(self):
        self.assertEqual(build_settings(make_args(log_level='debug'), self.configuration).log_level, 'DEBUG')

    def test_repr_hides_password(self):
        settings = ReportSettings(url='vc', username='admin', password='hunter2')

        self.assertNotIn('hunter2', repr(settings))


if __name__ == '__main__':
    unittest.main()
