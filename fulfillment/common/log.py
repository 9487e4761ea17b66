import logging

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str = "INFO") -> None:
    """サービス起動時にプロセス全体のログ形式を設定する"""
    logging.basicConfig(level=level.upper(), format=LOG_FORMAT)
