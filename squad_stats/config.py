import json
import os
from typing import List, Set

from dotenv import load_dotenv

load_dotenv()

class Config:
    """Forwarder configuration settings"""
    
    # MySquadStats API settings
    ACCESS_TOKEN = os.getenv('MSS_ACCESS_TOKEN')
    API_BASE_URL = os.getenv('MSS_API_BASE_URL', 'https://mysquadstats.com/api')
    RECOVERABLE_STATUS_CODES = os.getenv('MSS_RECOVERABLE_STATUS_CODES', '502')  # Comma-separated
    
    # Squad server settings
    SERVER_NAME = os.getenv('SQUAD_SERVER_NAME', 'Squad Server')
    INSTALL_ROOT = os.getenv('SQUAD_INSTALL_ROOT', '.')
    ADMIN_LISTS = os.getenv('MSS_ADMIN_LISTS', '[]')  # JSON array of {type, source}
    
    # Local storage
    DATA_DIR = os.getenv('MSS_DATA_DIR', 'MySquadStats_Data')
    LOG_DIR = os.getenv('LOG_DIR', 'logs')
    DEBUG = os.getenv('DEBUG', 'False').lower() == 'true'
    
    # Scheduling
    DRAIN_INTERVAL_SECONDS = int(os.getenv('MSS_DRAIN_INTERVAL_SECONDS', 60))
    REPLAY_SETTLE_SECONDS = float(os.getenv('MSS_REPLAY_SETTLE_SECONDS', 5))
    RECONCILE_INTERVAL_MINUTES = int(os.getenv('MSS_RECONCILE_INTERVAL_MINUTES', 30))
    RECONCILE_PACING_SECONDS = float(os.getenv('MSS_RECONCILE_PACING_SECONDS', 1))
    
    @classmethod
    def get_admin_lists(cls) -> List['AdminListSource']:
        """Parse the configured admin list sources, in order"""
        from squad_stats.models.admin import AdminListSource
        
        try:
            raw_lists = json.loads(cls.ADMIN_LISTS or '[]')
        except json.JSONDecodeError:
            raise ValueError("MSS_ADMIN_LISTS must be a JSON array of {type, source} objects")
        
        if not isinstance(raw_lists, list):
            raise ValueError("MSS_ADMIN_LISTS must be a JSON array of {type, source} objects")
        
        return [AdminListSource.from_dict(entry) for entry in raw_lists]
    
    @classmethod
    def get_recoverable_status_codes(cls) -> Set[int]:
        """Get the HTTP status codes that queue a request for retry"""
        try:
            return {int(code.strip()) for code in cls.RECOVERABLE_STATUS_CODES.split(',') if code.strip()}
        except ValueError:
            raise ValueError("MSS_RECOVERABLE_STATUS_CODES must be comma-separated integers")
    
    @classmethod
    def validate(cls):
        """Validate that required configuration is present"""
        if not cls.ACCESS_TOKEN or cls.ACCESS_TOKEN == 'YOUR_ACCESS_TOKEN':
            raise ValueError("MSS_ACCESS_TOKEN is required")
        if not cls.API_BASE_URL:
            raise ValueError("MSS_API_BASE_URL must not be empty")
        cls.get_admin_lists()
        cls.get_recoverable_status_codes()
