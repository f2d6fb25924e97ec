from setuptools import setup
from codecs import open
from os import path

here = path.abspath(path.dirname(__file__))

# Get the long description from the README file
with open(path.join(here, 'README.rst'), encoding='utf-8') as f:
    long_description = f.read()

setup(
    name='splitkeys',
    version='0.1.0.dev1',
    description='Threshold custody of minipool validator keys',
    long_description=long_description,
    author='Splitkeys developers',
    classifiers=[
        'Development Status :: 2 - Pre-Alpha',

        'Environment :: Console',

        'Intended Audience :: Developers',
        'Intended Audience :: Science/Research',

        'Programming Language :: Python :: 3',
    ],

    packages=['splitkeys'],
    python_requires='>=3.8',
    install_requires=[
        'json-rpc',
        'py_ecc>=5.0',
        'sqlalchemy>=1.4',
    ],
    extras_require={
        'test': [
            'flake8',
            'pytest',
        ],
    },

    entry_points={
        'console_scripts': [
            'splitkeys=splitkeys.__main__:main',
        ],
    },
)
