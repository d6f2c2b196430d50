"""CredLocker Meta information.
   CredLocker keeps named secrets encrypted inside a self-describing text file.
"""
__title__ = 'credlocker'
__description__ = (
   'CredLocker keeps named secrets encrypted inside a '
   'self-describing, HMAC-guarded text file.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 CredLocker Authors'
__author__ = 'CredLocker Authors'
__author_email__ = ''
__license__ = 'Apache-2.0'
