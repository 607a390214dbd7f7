from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn, TypedDict, cast

import yaml


class RawAppConfig(TypedDict):
    maildir_root: str
    listen_address: str
    listen_port: int
    poll_interval: float
    log_level: str


class RawConfigFile(TypedDict):
    config: RawAppConfig


CONFIG_FILENAME: Path = Path("config.yaml")


def type_error(value: object) -> NoReturn:
    raise TypeError(f"Unexpected value of wrong type: {value!r}")


@dataclass(slots=True)
class AppConfig:
    maildir_root: Path
    listen_address: str = "0.0.0.0"
    listen_port: int = 9440
    poll_interval: float = 0.1
    log_level: str = "INFO"

    @staticmethod
    def load(path: Path = CONFIG_FILENAME) -> "AppConfig":
        if not path.exists():
            raise FileNotFoundError("Missing config file. Run maildirwatch init first.")

        with path.open("r", encoding="UTF-8") as f:
            raw_loaded_obj: object | None = cast(object, yaml.safe_load(f))

        if not raw_loaded_obj:
            raise ValueError("Config file is empty or invalid YAML.")

        if not isinstance(raw_loaded_obj, dict):
            type_error(raw_loaded_obj)

        raw_dict: dict[str, object] = cast(dict[str, object], raw_loaded_obj)

        cfg_raw: object | None = raw_dict.get("config")
        if not isinstance(cfg_raw, dict):
            type_error(cfg_raw)

        cfg: RawAppConfig = cast(RawAppConfig, cast(object, cfg_raw))

        if "maildir_root" not in cfg:
            raise ValueError("Config file does not name a maildir_root.")

        appConfig: AppConfig = AppConfig(
            maildir_root=Path(cfg["maildir_root"]),
            listen_address=cfg.get("listen_address", "0.0.0.0"),
            listen_port=int(cfg.get("listen_port", 9440)),
            poll_interval=float(cfg.get("poll_interval", 0.1)),
            log_level=str(cfg.get("log_level", "INFO")).upper(),
        )

        return appConfig

    def save(self, path: Path = CONFIG_FILENAME) -> None:
        raw: RawConfigFile = {"config": self.to_raw()}
        with path.open("w", encoding="utf-8") as f:
            yaml.safe_dump(raw, f, sort_keys=False)

    def to_raw(self) -> RawAppConfig:
        return {
            "maildir_root": str(self.maildir_root),
            "listen_address": self.listen_address,
            "listen_port": self.listen_port,
            "poll_interval": self.poll_interval,
            "log_level": self.log_level,
        }
