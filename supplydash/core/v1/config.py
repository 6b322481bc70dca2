import pathlib
import yaml
import os

CONFIG_FILENAME = ".supplydash.yml"

# -------------------------------
# Collections (backing tables)
# -------------------------------
# Ordering applied when a whole collection is fetched for display. Collections
# missing here are returned in store order.
COLLECTIONS_DEFAULT_ORDER_BY = {
    "suppliers": "created_at",
    "wheelmotor": "created_at",
}

# -------------------------------
# Dashboard (static summary values)
# -------------------------------
# Stored in .supplydash.yml under:
# dashboard:
#   metrics: [ { title, value, trend: { value, positive } } ]
#   status:  [ { id, name, status, last_update } ]
DASHBOARD_DEFAULT_METRICS = [
    {"title": "Total Shipments", "value": "1,234", "trend": {"value": 12, "positive": True}},
    {"title": "Active Orders", "value": "56", "trend": {"value": 5, "positive": True}},
    {"title": "Equipment Utilization", "value": "85%", "trend": {"value": 3, "positive": False}},
]

DASHBOARD_DEFAULT_STATUS = [
    {"id": "1", "name": "Main Railway Line", "status": "Operational", "last_update": "5 minutes ago"},
    {"id": "2", "name": "Mining Equipment", "status": "Warning", "last_update": "15 minutes ago"},
    {"id": "3", "name": "Supply Chain Network", "status": "Operational", "last_update": "1 hour ago"},
]

ACTIVITY_DEFAULT_COLLECTION = "activity"
ACTIVITY_DEFAULT_LIMIT = 5


def _resolve_config_path() -> pathlib.Path:
    """Resolve the path to .supplydash.yml with environment overrides.

    Precedence:
      1) SD_CONFIG_FILE = absolute or relative path to the config file
      2) SD_CONFIG_DIR  = directory containing the config file
      3) Fallback to CWD: ./.supplydash.yml
    """
    env_file = os.environ.get("SD_CONFIG_FILE")
    if env_file:
        return pathlib.Path(env_file).expanduser().resolve()
    env_dir = os.environ.get("SD_CONFIG_DIR")
    if env_dir:
        return pathlib.Path(env_dir).expanduser().resolve() / CONFIG_FILENAME
    return pathlib.Path(CONFIG_FILENAME).expanduser().resolve()


def ensure_config() -> pathlib.Path:
    """Ensure .supplydash.yml exists; create with defaults if missing.

    Returns the path to the config file.
    """
    config_path = _resolve_config_path()
    if not config_path.exists():
        config_path.parent.mkdir(parents=True, exist_ok=True)
        config = {
            "store": {"backend": "supabase"},
            "supabase": {"url": None, "key": None},
        }
        with open(config_path, "w") as f:
            yaml.safe_dump(config, f, sort_keys=False)
    return config_path


def load_config() -> dict:
    config_path = ensure_config()
    with open(config_path) as f:
        return yaml.safe_load(f) or {}


def save_config(config: dict) -> None:
    config_path = _resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        yaml.safe_dump(config, f, sort_keys=False)


def _section(cfg: dict, name: str) -> dict:
    val = (cfg or {}).get(name)
    return val if isinstance(val, dict) else {}


def get_store_backend(cfg: dict | None = None) -> str:
    """Return the configured store backend: 'supabase' (default) or 'memory'.

    Env var SD_STORE overrides the config file.
    """
    if cfg is None:
        cfg = load_config()
    backend = os.environ.get("SD_STORE") or _section(cfg, "store").get("backend") or "supabase"
    backend = str(backend).strip().lower()
    if backend not in ("supabase", "memory"):
        raise RuntimeError(f"[supplyDash] Error: unknown store backend '{backend}' in {CONFIG_FILENAME}.")
    return backend


def get_seed_file(cfg: dict | None = None) -> pathlib.Path | None:
    """Return the YAML seed file for the memory backend, if configured."""
    if cfg is None:
        cfg = load_config()
    seed = os.environ.get("SD_SEED_FILE") or _section(cfg, "store").get("seed_file")
    if not seed:
        return None
    return pathlib.Path(seed).expanduser().resolve()


def get_supabase_credentials(cfg: dict | None = None) -> tuple[str, str]:
    """Return (url, key) for the hosted Supabase project.

    Env vars SD_SUPABASE_URL / SD_SUPABASE_KEY take precedence over the
    supabase.url / supabase.key entries in .supplydash.yml.
    """
    if cfg is None:
        cfg = load_config()
    sb = _section(cfg, "supabase")
    url = os.environ.get("SD_SUPABASE_URL") or sb.get("url")
    key = os.environ.get("SD_SUPABASE_KEY") or sb.get("key")
    if not url or not key:
        raise RuntimeError(
            f"[supplyDash] Error: supabase url/key not set in {CONFIG_FILENAME} "
            "(or SD_SUPABASE_URL / SD_SUPABASE_KEY)."
        )
    return str(url), str(key)


def get_collection_order_by(collection: str, cfg: dict | None = None) -> str | None:
    """Return the timestamp column a collection is ordered by (descending)."""
    if cfg is None:
        cfg = load_config()
    order = _section(cfg, "collections").get("order_by")
    if isinstance(order, dict) and collection in order:
        return order.get(collection) or None
    return COLLECTIONS_DEFAULT_ORDER_BY.get(collection)


def get_activity_settings(cfg: dict | None = None) -> tuple[str, int]:
    """Return (collection, limit) for the activity feed."""
    if cfg is None:
        cfg = load_config()
    act = _section(cfg, "activity")
    collection = act.get("collection") or ACTIVITY_DEFAULT_COLLECTION
    try:
        limit = int(act.get("limit", ACTIVITY_DEFAULT_LIMIT))
    except (TypeError, ValueError):
        limit = ACTIVITY_DEFAULT_LIMIT
    return str(collection), max(limit, 0)


def get_dashboard_metrics_spec(cfg: dict | None = None) -> list[dict]:
    if cfg is None:
        cfg = load_config()
    metrics = _section(cfg, "dashboard").get("metrics")
    if isinstance(metrics, list) and metrics:
        return [m for m in metrics if isinstance(m, dict)]
    return DASHBOARD_DEFAULT_METRICS


def get_dashboard_status_spec(cfg: dict | None = None) -> list[dict]:
    if cfg is None:
        cfg = load_config()
    status = _section(cfg, "dashboard").get("status")
    if isinstance(status, list) and status:
        return [s for s in status if isinstance(s, dict)]
    return DASHBOARD_DEFAULT_STATUS


def get_auth_users(cfg: dict | None = None) -> dict:
    """Return {email: password} accounts for the memory auth backend.

    Structure in .supplydash.yml:

      auth:
        users:
          - { email: ops@example.com, password: secret1 }
    """
    if cfg is None:
        cfg = load_config()
    users = _section(cfg, "auth").get("users")
    out = {}
    if isinstance(users, list):
        for u in users:
            if not isinstance(u, dict):
                continue
            email = str(u.get("email") or "").strip().lower()
            if email:
                out[email] = str(u.get("password") or "")
    return out
