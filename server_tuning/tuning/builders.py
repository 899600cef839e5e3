"""
Typed configuration builders - one per managed subsystem.

A builder turns the engine's logical settings (e.g. ``memory_limit_mb=512``)
into the subsystem's native key/value representation
(e.g. ``php_admin_value[memory_limit] = 512M``). Units, boolean spelling and
key names live here and nowhere else.
"""

from typing import Dict, List, Tuple, Type

from ..protocol.profile import SettingPairs, SettingValue

# Line styles understood by ConfigSurface
STYLE_SPACE = "space"     # key value
STYLE_EQUALS = "equals"   # key = value

NativePairs = List[Tuple[str, str]]


class ConfigBuilder:
    """Base builder: maps logical keys to native keys and renders values."""

    subsystem = ""
    style = STYLE_EQUALS
    comment_prefixes: Tuple[str, ...] = ("#",)
    true_value = "on"
    false_value = "off"

    # logical key -> native key
    KEYS: Dict[str, str] = {}
    # logical key -> unit suffix appended to the rendered number
    UNITS: Dict[str, str] = {}
    # logical key -> prefix prepended to the rendered value
    PREFIXES: Dict[str, str] = {}
    # native key -> enclosing "name { ... }" block, for block-structured files
    BLOCKS: Dict[str, str] = {}

    def native_key(self, key: str) -> str:
        return self.KEYS.get(key, key)

    def render_value(self, key: str, value: SettingValue) -> str:
        if isinstance(value, bool):
            return self.true_value if value else self.false_value
        rendered = str(value)
        return f"{self.PREFIXES.get(key, '')}{rendered}{self.UNITS.get(key, '')}"

    def build(self, pairs: SettingPairs) -> NativePairs:
        """Render logical pairs into native (key, value) strings, order kept."""
        return [(self.native_key(key), self.render_value(key, value)) for key, value in pairs]


class OpenLiteSpeedBuilder(ConfigBuilder):
    """httpd_config.conf (whitespace separated)."""
    subsystem = "web_server"
    style = STYLE_SPACE
    true_value = "1"
    false_value = "0"
    KEYS = {
        "max_connections": "maxConnections",
        "max_ssl_connections": "maxSSLConnections",
        "worker_processes": "httpdWorkers",
        "keep_alive_timeout": "keepAliveTimeout",
        "max_keep_alive_requests": "maxKeepAliveReq",
        "gzip_compression": "enableGzipCompress",
        "gzip_compression_level": "gzipCompressLevel",
        "cache_expire": "expiresDefault",
    }
    PREFIXES = {"cache_expire": "A"}
    BLOCKS = {
        "maxConnections": "tuning",
        "maxSSLConnections": "tuning",
        "keepAliveTimeout": "tuning",
        "maxKeepAliveReq": "tuning",
        "enableGzipCompress": "tuning",
        "gzipCompressLevel": "tuning",
        "expiresDefault": "expires",
    }


class PhpFpmBuilder(ConfigBuilder):
    """PHP-FPM pool file: pool directives plus php_admin_value overrides."""
    subsystem = "runtime"
    comment_prefixes = (";", "#")
    KEYS = {
        "memory_limit_mb": "php_admin_value[memory_limit]",
        "max_execution_time": "php_admin_value[max_execution_time]",
        "max_input_time": "php_admin_value[max_input_time]",
        "max_children": "pm.max_children",
        "max_requests": "pm.max_requests",
        "process_idle_timeout": "pm.process_idle_timeout",
        "opcache_memory_mb": "php_admin_value[opcache.memory_consumption]",
        "opcache_max_accelerated_files": "php_admin_value[opcache.max_accelerated_files]",
    }
    UNITS = {
        "memory_limit_mb": "M",
        "process_idle_timeout": "s",
    }


class PostgresBuilder(ConfigBuilder):
    """postgresql.conf drop-in (conf.d)."""
    subsystem = "database"
    KEYS = {
        "buffer_pool_mb": "shared_buffers",
        "max_connections": "max_connections",
        "worker_processes": "max_worker_processes",
        "maintenance_work_mem_mb": "maintenance_work_mem",
        "wal_size_mb": "min_wal_size",
        "synchronous_commit": "synchronous_commit",
        "io_concurrency": "effective_io_concurrency",
        "temp_buffers_mb": "temp_buffers",
    }
    UNITS = {
        "buffer_pool_mb": "MB",
        "maintenance_work_mem_mb": "MB",
        "wal_size_mb": "MB",
        "temp_buffers_mb": "MB",
    }


class RedisBuilder(ConfigBuilder):
    """redis.conf (whitespace separated)."""
    subsystem = "cache"
    style = STYLE_SPACE
    true_value = "yes"
    false_value = "no"
    KEYS = {
        "maxmemory_mb": "maxmemory",
        "maxmemory_policy": "maxmemory-policy",
        "tcp_keepalive": "tcp-keepalive",
        "timeout": "timeout",
    }
    UNITS = {"maxmemory_mb": "mb"}


class SysctlBuilder(ConfigBuilder):
    """sysctl.d drop-in; logical keys are already native."""
    subsystem = "kernel"
    true_value = "1"
    false_value = "0"


BUILDERS: Dict[str, Type[ConfigBuilder]] = {
    "web_server": OpenLiteSpeedBuilder,
    "runtime": PhpFpmBuilder,
    "database": PostgresBuilder,
    "cache": RedisBuilder,
    "kernel": SysctlBuilder,
}


def builder_for(subsystem: str) -> ConfigBuilder:
    """Get the builder for a subsystem name."""
    try:
        return BUILDERS[subsystem]()
    except KeyError:
        raise ValueError(f"No configuration builder for subsystem: {subsystem}")
