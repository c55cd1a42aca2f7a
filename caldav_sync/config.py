"""
Configuration handling.  Connection parameters can be given directly,
through CALDAV_* environment variables or through a JSON or YAML config
file like this one::

    {
        "default": {
            "caldav_url": "https://caldav.example.com/",
            "caldav_user": "alice",
            "caldav_pass": "secret"
        },
        "work": {"inherits": "default", "caldav_user": "alice.work"}
    }
"""
import json
import logging
import os

log = logging.getLogger(__name__)

## Parameters accepted by the client constructors
CONNKEYS = set(
    (
        "url",
        "username",
        "password",
        "timeout",
        "headers",
        "huge_tree",
        "ssl_verify_cert",
        "range_window",
        "min_range_window",
    )
)


def config_section(config, section="default"):
    """
    Return the given section, with the keys of the section it
    ``inherits`` from (recursively) as defaults.
    """
    if section in config and "inherits" in config[section]:
        ret = config_section(config, config[section]["inherits"])
    else:
        ret = {}
    if section in config:
        ret.update(config[section])
    ret.pop("inherits", None)
    return ret


def read_config(fn, interactive_error=False):
    if not fn:
        cfgdir = f"{os.environ.get('HOME', '/')}/.config/"
        for config_file in (
            f"{cfgdir}/caldav/calendar.conf",
            f"{cfgdir}/caldav/calendar.yaml",
            f"{cfgdir}/caldav/calendar.json",
            f"{cfgdir}/calendar.conf",
            "/etc/calendar.conf",
            "/etc/caldav/calendar.conf",
        ):
            cfg = read_config(config_file)
            if cfg:
                return cfg
        return {}

    try:
        try:
            with open(fn, "rb") as config_file:
                return json.load(config_file)
        except json.decoder.JSONDecodeError:
            ## Late import, wrapped in try/except.  yaml is an optional
            ## dependency, see the "yaml" extra.
            try:
                import yaml

                try:
                    with open(fn, "rb") as config_file:
                        return yaml.load(config_file, yaml.Loader) or {}
                except yaml.YAMLError:
                    log.error(
                        f"config file {fn} exists but is neither valid json nor yaml.  Check the syntax."
                    )
            except ImportError:
                log.error(
                    f"config file {fn} exists but is not valid json, and pyyaml is not installed."
                )

    except FileNotFoundError:
        log.info("no config file found at %s", fn)
    except ValueError:
        if interactive_error:
            log.error(
                "error in config file.  Be aware that the interactive configuration will ignore and overwrite the current broken config file",
                exc_info=True,
            )
        else:
            log.error("error in config file.  It will be ignored", exc_info=True)
    return {}


def _from_environment():
    conf = {}
    for conf_key in (
        x
        for x in os.environ
        if x.startswith("CALDAV_") and not x.startswith("CALDAV_CONFIG")
    ):
        key = conf_key[7:].lower()
        if key in CONNKEYS:
            conf[key] = os.environ[conf_key]
    return conf


def _from_config_section(section):
    conn_params = {}
    for k in section:
        if k.startswith("caldav_") and section[k]:
            key = k[7:]
            if key == "pass":
                key = "password"
            if key == "user":
                key = "username"
            if key in CONNKEYS:
                conn_params[key] = section[k]
    return conn_params


def get_connection_params(
    config_file=None,
    config_section_name=None,
    environment=True,
    **params,
):
    """
    Find the connection parameters for a client, looking in this order:

    * The parameters given
    * Environment variables prepended with `CALDAV_`, like `CALDAV_URL`,
      `CALDAV_USERNAME`, `CALDAV_PASSWORD`, `CALDAV_TIMEOUT`.
      `CALDAV_CONFIG_FILE` and `CALDAV_CONFIG_SECTION` point out the
      config file to use.
    * The config file section, keys prepended with `caldav_`

    The first source that yields anything wins.  Returns None if
    nothing was found.
    """
    if params:
        return params

    if environment:
        conf = _from_environment()
        if conf:
            return conf
        if not config_file:
            config_file = os.environ.get("CALDAV_CONFIG_FILE")
        if not config_section_name:
            config_section_name = os.environ.get("CALDAV_CONFIG_SECTION")

    cfg = read_config(config_file)
    if cfg:
        section = config_section(cfg, config_section_name or "default")
        conn_params = _from_config_section(section)
        if conn_params:
            return conn_params
    return None
