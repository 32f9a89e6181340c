import os

from setuptools import find_packages, setup

with open('README.md') as readme_file:
    readme = readme_file.read()

this = os.path.dirname(os.path.realpath(__file__))

def read(name):
    with open(os.path.join(this, name)) as f:
        return f.read()
setup(
    name='ionchannel',
    version='0.1.0',
    description='Idealization of single-channel ion current recordings into two-state dwell-time sequences',
    long_description=readme,
    long_description_content_type='text/markdown',
    package_dir={'': 'src'},
    packages=find_packages('src'),
    python_requires='>=3.10',
    install_requires=read('requirements.txt').splitlines(),
    extras_require={
        'test': ['pytest'],
    },
    include_package_data=True,
    zip_safe=False,
    license='GPLv3',
    keywords='ion channel patch clamp idealization change-point analysis MDL',
    classifiers=[
        'Development Status :: 3 - Alpha',
        'Intended Audience :: Science/Research',
        'Natural Language :: English',
        'Programming Language :: Python :: 3',
    ],
)
