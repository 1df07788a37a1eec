"""
Utility modules for chromium-session
"""

from .file_utils import create_dir, get_current_dir, write_to_file
from .user_agents import USER_AGENT_LIST, get_random_user_agent

__all__ = [
    'create_dir', 'get_current_dir', 'write_to_file',
    'USER_AGENT_LIST', 'get_random_user_agent',
]
