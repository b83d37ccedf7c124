"""Toosla Storage Meta information.
   Toosla Storage keeps a local key-value store in sync with a remote
   endpoint and protects user secrets with a PIN-derived key.
"""
__title__ = 'toosla_storage'
__description__ = (
   'Toosla Storage keeps a local key-value store in sync with a remote '
   'endpoint and protects user secrets with a PIN-derived key.'
)
__version__ = '0.3.0'
__copyright__ = 'Copyright (c) 2025 Stefano Fornari'
__author__ = 'Stefano Fornari'
__author_email__ = 'stefano.fornari@gmail.com'
__license__ = 'EUPL-1.2'
__url__ = 'https://github.com/stefanofornari/toosla'
