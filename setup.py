from setuptools import setup, find_packages

import os
import re

with open(os.path.join('destchoice', '__init__.py')) as f:
    info = re.search(r'__.*', f.read(), re.S)
    exec(info[0])

setup(
    name='destchoice',
    version=__version__,
    description=__doc__,
    author='contributing authors',
    license='BSD-3',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Programming Language :: Python :: 3.10',
        'License :: OSI Approved :: BSD License'
    ],
    packages=find_packages(exclude=['*.tests']),
    package_data={'destchoice.abm.test': ['configs/*.yaml', 'configs/*.csv']},
    include_package_data=True,
    python_requires='>=3.10',
    install_requires=[
        'numpy >= 1.22',
        'pandas >= 1.4',
        'pyyaml >= 5.1',
        'pydantic >= 2.0',
    ],
    extras_require={
        'test': ['pytest >= 7.0'],
    },
)
