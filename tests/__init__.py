"""
DDH Inner-Product Functional Encryption Test Suite

Unit tests for group parameter generation, bounded discrete logarithms,
the single- and multi-input schemes, serialization, configuration and the
command-line front end.
"""

# Version of the test suite
__version__ = '0.1.0'

# Test categories available
TEST_CATEGORIES = [
    'group_params',
    'dlog',
    'ddh_fe',
    'ddh_multi',
    'fe_codec',
    'fe_config',
    'fe_cli',
    'fe_benchmark',
]
