# machine_efficiency/config.py
"""Configuration management for Machine Efficiency Dashboard"""
import os
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


class StoreConfig:
    """Remote spreadsheet store configuration"""
    def __init__(self):
        self.url = os.getenv('STORE_URL', 'https://script.google.com/macros/s/REPLACE_ME/exec')
        timeout = os.getenv('STORE_TIMEOUT')
        # No timeout unless explicitly configured
        self.timeout = float(timeout) if timeout else None
        self.actions = {
            'machines': 'getMainData',
            'master': 'getMasterData',
            'records': 'getRecords',
            'users': 'getUsers',
            'save_records': 'saveRecords',
        }


class AppConfig:
    """Application and session configuration"""
    def __init__(self):
        self.session_secret = os.getenv('SESSION_SECRET', 'change-me')
        self.session_key = 'machine_efficiency_user'
        self.admin_role = os.getenv('ADMIN_ROLE', 'admin').strip().lower()
        self.all_firms = os.getenv('ALL_FIRMS', 'All')
        self.default_specifications = [
            'Labour issue',
            'Machine work/maintenance',
            'Electricity issue',
            'Raw material issue',
            'Space – Not available',
        ]
        self.default_materials = ['P14', 'Sand', 'Steel', 'Aluminum', 'Copper']


store_config = StoreConfig()
app_config = AppConfig()
