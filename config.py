#!/usr/bin/env python3

import os
import subprocess
import logging
from typing import Optional
from dotenv import load_dotenv

from device_family import DeviceFamily

# Load environment variables from .env file
load_dotenv()


class Config:
    """Configuration management for the OLT bot"""

    def __init__(self):
        # OLT web API Configuration
        self.olt_url = os.getenv('OLT_URL')
        if not self.olt_url:
            raise ValueError("OLT_URL must be set in environment")
        self.olt_url = self.olt_url.rstrip('/')

        self.olt_user = os.getenv('UNAME')
        if not self.olt_user:
            raise ValueError("UNAME must be set in environment")

        self.olt_password = os.getenv('UPASS')
        self.olt_pass_path = os.getenv('OLT_PASS_PATH')

        self.olt_type = os.getenv('OLT_TYPE')
        self.device_family = DeviceFamily.parse(self.olt_type)

        # Session and retry Configuration
        self.token_ttl_seconds = int(os.getenv('TOKEN_TTL_SECONDS', '1800'))
        self.api_max_attempts = int(os.getenv('API_MAX_ATTEMPTS', '2'))
        self.api_retry_backoff_seconds = float(os.getenv('API_RETRY_BACKOFF_SECONDS', '1'))
        self.api_timeout_seconds = float(os.getenv('API_TIMEOUT_SECONDS', '10'))
        self.verify_tls = os.getenv('VERIFY_TLS', 'false').lower() == 'true'  # OLTs ship self-signed certificates

        # Signal Quality Configuration
        self.bad_signal_threshold_dbm = float(os.getenv('BAD_SIGNAL_THRESHOLD_DBM', '-25'))

        # Monitoring Configuration
        self.collection_interval_seconds = int(os.getenv('COLLECTION_INTERVAL_SECONDS', '60'))
        self.metrics_port = int(os.getenv('METRICS_PORT', '9105'))
        self.metrics_host = os.getenv('METRICS_HOST', '0.0.0.0')

        # Logging Configuration
        self.log_level = getattr(logging, os.getenv('LOG_LEVEL', 'INFO').upper(), logging.INFO)
        self.log_file = os.getenv('LOG_FILE', 'olt_bot.log')
        self.log_max_bytes = int(os.getenv('LOG_MAX_BYTES', str(1024 * 1024)))
        self.log_backup_count = int(os.getenv('LOG_BACKUP_COUNT', '5'))
        self.debug_logging = os.getenv('DEBUG_LOGGING', 'false').lower() == 'true'

    def get_olt_password(self) -> Optional[str]:
        """Get OLT password from the environment, else from pass"""
        if self.olt_password:
            return self.olt_password

        try:
            if not self.olt_pass_path:
                logging.error("OLT password not set: provide UPASS or OLT_PASS_PATH")
                return None

            result = subprocess.run(
                ['pass', self.olt_pass_path],
                capture_output=True,
                text=True,
                check=True
            )
            return result.stdout.strip()
        except subprocess.CalledProcessError as e:
            logging.error(f"Failed to get OLT password: {e.stderr}")
            return None
        except OSError as e:
            logging.error(f"Error running pass command for OLT password: {e}")
            return None

    def validate(self) -> bool:
        """Validate configuration"""
        errors = []

        # Check required passwords
        if not self.get_olt_password():
            errors.append("OLT password not available")

        if self.device_family is DeviceFamily.UNKNOWN:
            logging.warning("OLT_TYPE is not EPON or GPON, using EPON endpoints without authorization refresh")

        # Check limits
        if self.token_ttl_seconds <= 0:
            errors.append("Token TTL must be positive")

        if self.api_max_attempts <= 0:
            errors.append("API max attempts must be positive")

        if self.api_retry_backoff_seconds < 0:
            errors.append("API retry backoff must not be negative")

        if self.api_timeout_seconds <= 0:
            errors.append("API timeout must be positive")

        if self.collection_interval_seconds <= 0:
            errors.append("Collection interval must be positive")

        if errors:
            for error in errors:
                logging.error(f"Configuration error: {error}")
            return False

        return True

    def log_configuration(self):
        """Log current configuration (without sensitive data)"""
        logging.info("=== Configuration ===")
        logging.info(f"OLT URL: {self.olt_url}")
        logging.info(f"OLT User: {self.olt_user}")
        logging.info(f"OLT Type: {self.device_family.value}")
        logging.info(f"Token TTL: {self.token_ttl_seconds}s")
        logging.info(f"API Attempts: {self.api_max_attempts}")
        logging.info(f"API Retry Backoff: {self.api_retry_backoff_seconds}s")
        logging.info(f"API Timeout: {self.api_timeout_seconds}s")
        logging.info(f"Verify TLS: {self.verify_tls}")
        logging.info(f"Bad Signal Threshold: {self.bad_signal_threshold_dbm} dBm")
        logging.info(f"Collection Interval: {self.collection_interval_seconds}s")
        logging.info(f"Metrics Port: {self.metrics_port}")
        logging.info(f"Metrics Host: {self.metrics_host}")
        logging.info("=====================")

    def enable_debug_logging(self):
        """Enable debug logging for troubleshooting"""
        self.log_level = logging.DEBUG
        self.debug_logging = True
        logging.info("Debug logging enabled")


# Global configuration instance
config = Config()
