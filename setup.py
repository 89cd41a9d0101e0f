from setuptools import setup


setup(
    name='apns-legacy',
    version='0.1',
    description="A client for Apple's legacy binary push notification protocol.",
    long_description=open('README.rst').read(),
    license='BSD',
    classifiers=[
        'Development Status :: 4 - Beta',
        'Intended Audience :: Developers',
        'License :: OSI Approved :: BSD License',
        'Programming Language :: Python :: 3',
        'Programming Language :: Python :: 3 :: Only',
    ],

    python_requires='>=3.8',
    install_requires=[],
    extras_require={
        'test': ['cryptography'],
    },
    packages=[
        'apns_legacy',
        'apns_legacy.tests',
    ],
    entry_points={
        'console_scripts': [
            'apns-legacy = apns_legacy.cli:main',
        ],
    },
    include_package_data=True,
    zip_safe=False,
)
