import logging
import sys
from datetime import datetime
from pathlib import Path

from squad_stats.config import Config

ROOT_LOGGER_NAME = 'squad_stats'

def _configure_root_logger() -> logging.Logger:
    """Attach console and dated file handlers to the package root logger once"""
    
    root = logging.getLogger(ROOT_LOGGER_NAME)
    
    if root.handlers:
        return root
    
    log_level = logging.DEBUG if Config.DEBUG else logging.INFO
    root.setLevel(logging.DEBUG)
    # Host process owns the real root logger; keep our lines out of its handlers
    root.propagate = False
    
    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )
    
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)
    root.addHandler(console_handler)
    
    if Config.LOG_DIR:
        log_dir = Path(Config.LOG_DIR)
        log_dir.mkdir(parents=True, exist_ok=True)
        
        file_handler = logging.FileHandler(
            log_dir / f'squad_stats_{datetime.now().strftime("%Y%m%d")}.log',
            encoding='utf-8'
        )
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
    
    return root

def setup_logger(name: str) -> logging.Logger:
    """Get a module logger that writes through the package handlers"""
    _configure_root_logger()
    
    if name == '__main__' or not name.startswith(ROOT_LOGGER_NAME):
        name = f'{ROOT_LOGGER_NAME}.{name}'
    
    return logging.getLogger(name)
