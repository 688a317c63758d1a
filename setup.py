from setuptools import setup, find_packages
import re

# Read version from mailundo/__init__.py
with open('mailundo/__init__.py') as f:
    version = re.search(r'^__version__ = ["\']([^"\']+)["\']', f.read(), re.MULTILINE).group(1)

setup(
    name='mailundo',
    version=version,
    packages=find_packages(include=['mailundo', 'mailundo.*']),
    install_requires=[
        'google-api-python-client',
        'google-auth',
        'google-auth-oauthlib',
        'python-dotenv',
        'click>=8.0',
        'PyYAML',
        'click_option_group',
    ],
    extras_require={
        'test': ['pytest'],
    },
    entry_points={
        'console_scripts': [
            'mailundo=mailundo.cli.__main__:main',
        ],
    },
    author='CLI Developer',
    description='Gmail mailbox actions with single-level undo and local cache reconciliation.',
    long_description=open('README.md').read(),
    long_description_content_type='text/markdown',
)
