"""Notosha Vault Meta information.
   Notosha Vault keeps user secrets encrypted on the client side.
"""
__title__ = 'notosha_vault'
__description__ = (
   'Zero-knowledge secret vault: client-side key derivation, '
   'authenticated encryption and session locking.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2024 Notosha Vault Authors'
__author__ = 'Notosha Vault Authors'
__author_email__ = 'dev@notosha.app'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/notosha/notosha-vault'
