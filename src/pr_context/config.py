"""
Configuration Management

시스템 설정 관리
"""

import os
import yaml
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any
from pathlib import Path
import logging
from logging.handlers import RotatingFileHandler


def _env_bool(name: str, default: bool) -> bool:
    return os.getenv(name, str(default)).lower() == "true"


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    token: Optional[str] = None
    api_base_url: str = "https://api.github.com"
    timeout_seconds: int = 30
    rate_limit_warning_threshold: int = 100
    max_wait_seconds: float = 60.0
    primary_retries: int = 2
    secondary_retries: int = 1
    server_error_retries: int = 3
    backoff_factor: float = 1.0


@dataclass
class ContextConfig:
    """PR 컨텍스트 생성 기본값"""
    include_file_contents: bool = True
    include_commits: bool = True
    context_lines: int = 10
    max_files_to_fetch: int = 50
    skip_binary_files: bool = True
    skip_generated_files: bool = True
    content_batch_size: int = 10
    batch_pause_seconds: float = 0.1


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


@dataclass
class AppConfig:
    """전체 애플리케이션 설정"""
    github: GitHubConfig
    context: ContextConfig
    logging: LoggingConfig
    debug: bool = False

    @classmethod
    def from_env(cls) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        return cls(
            github=GitHubConfig(
                token=os.getenv("GITHUB_TOKEN"),
                api_base_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
                timeout_seconds=int(os.getenv("GITHUB_TIMEOUT", "30")),
                rate_limit_warning_threshold=int(os.getenv("GITHUB_RATE_LIMIT_WARNING", "100")),
                max_wait_seconds=float(os.getenv("GITHUB_MAX_WAIT", "60")),
                primary_retries=int(os.getenv("GITHUB_PRIMARY_RETRIES", "2")),
                secondary_retries=int(os.getenv("GITHUB_SECONDARY_RETRIES", "1")),
                server_error_retries=int(os.getenv("GITHUB_SERVER_ERROR_RETRIES", "3")),
                backoff_factor=float(os.getenv("GITHUB_BACKOFF_FACTOR", "1.0")),
            ),
            context=ContextConfig(
                include_file_contents=_env_bool("PR_CONTEXT_INCLUDE_FILE_CONTENTS", True),
                include_commits=_env_bool("PR_CONTEXT_INCLUDE_COMMITS", True),
                context_lines=int(os.getenv("PR_CONTEXT_LINES", "10")),
                max_files_to_fetch=int(os.getenv("PR_CONTEXT_MAX_FILES", "50")),
                skip_binary_files=_env_bool("PR_CONTEXT_SKIP_BINARY", True),
                skip_generated_files=_env_bool("PR_CONTEXT_SKIP_GENERATED", True),
                content_batch_size=int(os.getenv("PR_CONTEXT_BATCH_SIZE", "10")),
                batch_pause_seconds=float(os.getenv("PR_CONTEXT_BATCH_PAUSE", "0.1")),
            ),
            logging=LoggingConfig(
                level=os.getenv("LOG_LEVEL", "INFO"),
                format=os.getenv("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=os.getenv("LOG_FILE"),
                max_file_size=int(os.getenv("LOG_MAX_SIZE", str(10 * 1024 * 1024))),
                backup_count=int(os.getenv("LOG_BACKUP_COUNT", "5")),
            ),
            debug=_env_bool("DEBUG", False),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")

        with open(config_file, 'r', encoding='utf-8') as f:
            config_data = yaml.safe_load(f) or {}

        return cls(
            github=GitHubConfig(**config_data.get('github', {})),
            context=ContextConfig(**config_data.get('context', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
            debug=config_data.get('debug', False),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        # GitHub 토큰 필수 확인
        if not self.github.token:
            errors.append("GitHub token is required")

        if self.github.timeout_seconds <= 0:
            errors.append("GitHub timeout must be positive")

        if self.github.max_wait_seconds <= 0:
            errors.append("Rate limit max wait must be positive")

        if min(self.github.primary_retries, self.github.secondary_retries, self.github.server_error_retries) < 0:
            errors.append("Retry counts must be non-negative")

        if self.context.max_files_to_fetch < 0:
            errors.append("max_files_to_fetch must be non-negative")

        if self.context.context_lines < 0:
            errors.append("context_lines must be non-negative")

        if self.context.content_batch_size <= 0:
            errors.append("Content batch size must be positive")

        # 로그 레벨 검증
        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ValueError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        github = asdict(self.github)
        # 보안상 토큰은 제외
        github.pop('token')
        return {
            'github': github,
            'context': asdict(self.context),
            'logging': asdict(self.logging),
            'debug': self.debug,
        }


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()
        self._config.validate()
        self._setup_logging()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """설정 업데이트"""
        config_dict = self._config.to_dict()
        config_dict['github']['token'] = self._config.github.token

        for key, value in kwargs.items():
            if '.' in key:
                # 중첩된 설정 (예: 'context.max_files_to_fetch')
                section, field_name = key.split('.', 1)
                if section in config_dict:
                    config_dict[section][field_name] = value
            else:
                # 최상위 설정
                config_dict[key] = value

        self._config = AppConfig(
            github=GitHubConfig(**config_dict['github']),
            context=ContextConfig(**config_dict['context']),
            logging=LoggingConfig(**config_dict['logging']),
            debug=config_dict['debug'],
        )

        self._config.validate()
        self._setup_logging()

    def _setup_logging(self) -> None:
        """로깅 설정"""
        logging.basicConfig(
            level=getattr(logging, self._config.logging.level.upper()),
            format=self._config.logging.format,
        )

        # 파일 로깅이 설정된 경우 로테이션 설정
        if self._config.logging.file_path:
            handler = RotatingFileHandler(
                self._config.logging.file_path,
                maxBytes=self._config.logging.max_file_size,
                backupCount=self._config.logging.backup_count,
            )
            handler.setFormatter(logging.Formatter(self._config.logging.format))
            logging.getLogger().addHandler(handler)


# 전역 설정 관리자 (최초 사용 시 생성)
_config_manager: Optional[ConfigManager] = None


def get_config() -> AppConfig:
    """현재 설정 반환"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    return _config_manager.config


def update_config(**kwargs) -> None:
    """설정 업데이트"""
    global _config_manager
    if _config_manager is None:
        _config_manager = ConfigManager()
    _config_manager.update_config(**kwargs)
