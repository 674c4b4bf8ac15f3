import json, logging, sys
from datetime import datetime, timezone

_RESERVED = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    def format(self, record):
        p = {"ts": datetime.now(timezone.utc).isoformat(),
             "level": record.levelname, "logger": record.name, "msg": record.getMessage()}
        # fields passed through extra={...}
        for k, v in vars(record).items():
            if k not in _RESERVED and k not in p:
                p[k] = v
        if record.exc_info: p["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(p, ensure_ascii=False, default=str)


def configure_logging(level=logging.INFO):
    h = logging.StreamHandler(sys.stderr); h.setFormatter(JsonFormatter())
    root = logging.getLogger(); root.handlers.clear(); root.addHandler(h); root.setLevel(level)
