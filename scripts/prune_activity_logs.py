import config
from pulse.db import prune_logs

n = prune_logs(retention_days=config.RETENTION_DAYS)
print(f"OK: pruned {n} activity rows older than {config.RETENTION_DAYS} days")
