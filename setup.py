from pathlib import Path
from setuptools import setup, find_packages


def read_requirements(filename):
    with open(filename) as f:
        return [req for req in (req.partition('#')[0].strip() for req in f) if req]


setup(
    name='xmlsplit',
    version='0.1.0',
    description='Splittable reading and writing of large record oriented XML files.',
    long_description=Path('README.rst').read_text(),
    long_description_content_type='text/x-rst',
    license='MIT',
    packages=find_packages(exclude=['tests', 'tests.*']),
    python_requires='>=3.8',
    install_requires=read_requirements('requirements.in'),
    extras_require={
        'test': read_requirements('requirements-dev.in'),
    },
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: MIT License',
        'Operating System :: POSIX',
        'Programming Language :: Python :: 3 :: Only',
        'Topic :: Text Processing :: Markup :: XML',
    ],
)
