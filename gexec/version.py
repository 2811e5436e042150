"""GExec Core Meta information.
   GExec Core protects credentials and project access for the gexec
   orchestration backend.
"""
__title__ = 'gexec'
__description__ = (
   'Secret envelope, cascading secret walker and project access '
   'resolver for the gexec orchestration backend.'
)
__version__ = '0.1.0'
__copyright__ = 'Copyright (c) 2025 GExec Authors'
__author__ = 'GExec Authors'
__license__ = 'Apache-2.0'
__url__ = 'https://github.com/gexec/gexec'
