"""
Tests for pagehook configuration system.
"""

import json
import os
import tempfile
from pathlib import Path

import pytest

from pagehook.config import (
    BridgeOptions,
    CDPOptions,
    ConfigLoader,
    ConfigurationError,
    DetectionOptions,
    DispatchOptions,
    PagehookConfig,
    RouteConfig,
    SiteConfig,
    find_config_file,
    get_env,
    get_env_key,
    load_config,
    load_config_with_profile,
    load_env_config,
    load_file,
    load_profile,
    load_sites_file,
    merge_configs,
    save_config,
)
from pagehook.models import HostMatch, MatchType


def on_orders(context):
    pass


class TestOptions:
    """Tests for option classes."""

    def test_dispatch_defaults(self):
        options = DispatchOptions()
        assert options.delay_ms == 2000
        assert options.repeat_threshold_ms == 2000

    def test_dispatch_validation(self):
        with pytest.raises(ValueError):
            DispatchOptions(delay_ms=-1)

    def test_detection_defaults(self):
        options = DetectionOptions()
        assert options.enabled is True
        assert options.check_immediately is False
        assert options.binding_name == "__pagehookUrlChanged"

    def test_binding_name_must_be_identifier(self):
        with pytest.raises(ValueError):
            DetectionOptions(binding_name="not-valid")

    def test_bridge_and_cdp_defaults(self):
        assert BridgeOptions().relay_tab_loads is True
        assert CDPOptions().endpoint == "http://127.0.0.1:9222"
        assert CDPOptions().timeout == 30.0
        with pytest.raises(ValueError):
            CDPOptions(timeout=0)


class TestRegistryConfig:
    """Tests for RouteConfig and SiteConfig."""

    def test_match_normalized(self):
        route = RouteConfig(path="/a", handler="pkg:fn", match="Path-Prefix")
        assert route.match is MatchType.PATH_PREFIX

    def test_match_optional(self):
        assert RouteConfig(path="/a", handler="pkg:fn").match is None

    def test_unknown_match_rejected(self):
        with pytest.raises(ValueError):
            RouteConfig(path="/a", handler="pkg:fn", match="fuzzy")

    def test_site_host_aliases(self):
        assert SiteConfig.model_validate({"url": "A.com"}).url == "a.com"
        assert SiteConfig.model_validate({"host": "b.com"}).url == "b.com"
        assert SiteConfig.model_validate({"host_match": "c.com"}).url == "c.com"

    def test_site_host_required(self):
        with pytest.raises(ValueError):
            SiteConfig.model_validate({"url": "   "})

    def test_site_default_strategies(self):
        site = SiteConfig(url="a.com")
        assert site.host_strategies == [HostMatch.EXACT, HostMatch.SUBDOMAIN, HostMatch.SUBSTRING]

    def test_callable_handler_serialized(self):
        route = RouteConfig(path="/orders", handler=on_orders)
        assert route.model_dump()["handler"] == f"{__name__}:on_orders"


class TestPagehookConfig:
    """Tests for PagehookConfig."""

    def test_default_values(self):
        config = PagehookConfig()
        assert config.dispatch.delay_ms == 2000
        assert config.sites == []
        assert config.strict_registry is False
        assert config.log_level is None

    def test_from_dict(self):
        config = PagehookConfig.from_dict({
            "dispatch": {"delay_ms": 500},
            "sites": [{"url": "shop.example.com", "routes": [{"path": "/cart", "handler": "m:f"}]}],
            "log_level": "debug",
        })
        assert config.dispatch.delay_ms == 500
        assert config.dispatch.repeat_threshold_ms == 2000
        assert config.sites[0].routes[0].path == "/cart"
        assert config.log_level == "DEBUG"

    def test_invalid_log_level(self):
        with pytest.raises(ValueError):
            PagehookConfig(log_level="chatty")

    def test_to_dict(self):
        data = PagehookConfig(sites=[{"url": "a.com"}]).to_dict()
        assert data["dispatch"]["delay_ms"] == 2000
        assert data["sites"][0]["url"] == "a.com"
        assert data["sites"][0]["host_strategies"] == ["exact", "subdomain", "substring"]
        assert "log_level" not in data


class TestEnvironmentVariables:
    """Tests for environment variable support."""

    def test_get_env_key(self):
        assert get_env_key("dispatch.delay_ms") == "PAGEHOOK_DISPATCH_DELAY_MS"
        assert get_env_key("log_level") == "PAGEHOOK_LOG_LEVEL"

    def test_get_env_typed(self):
        os.environ["PAGEHOOK_TEST_BOOL"] = "yes"
        os.environ["PAGEHOOK_TEST_INT"] = "42"
        try:
            assert get_env("test.bool", target_type=bool) is True
            assert get_env("test.int", default=0) == 42
            assert get_env("test.int") == "42"
        finally:
            del os.environ["PAGEHOOK_TEST_BOOL"]
            del os.environ["PAGEHOOK_TEST_INT"]

    def test_get_env_default(self):
        assert get_env("nonexistent.key", default="default") == "default"

    def test_load_env_config(self):
        os.environ["PAGEHOOK_DISPATCH_DELAY_MS"] = "250"
        os.environ["PAGEHOOK_DETECTION_CHECK_IMMEDIATELY"] = "true"
        os.environ["PAGEHOOK_LOG_LEVEL"] = "info"
        try:
            env = load_env_config()
            assert env["dispatch"] == {"delay_ms": 250}
            assert env["detection"] == {"check_immediately": True}
            assert env["log_level"] == "info"
            assert "cdp" not in env
        finally:
            del os.environ["PAGEHOOK_DISPATCH_DELAY_MS"]
            del os.environ["PAGEHOOK_DETECTION_CHECK_IMMEDIATELY"]
            del os.environ["PAGEHOOK_LOG_LEVEL"]


class TestConfigLoader:
    """Tests for ConfigLoader and file loading."""

    def _write(self, directory, name, content):
        path = Path(directory) / name
        path.write_text(content, encoding="utf-8")
        return path

    def test_load_json(self):
        with tempfile.NamedTemporaryFile(mode="w", suffix=".json", delete=False) as f:
            json.dump({"dispatch": {"delay_ms": 100}}, f)
            path = f.name
        try:
            assert load_file(path) == {"dispatch": {"delay_ms": 100}}
        finally:
            os.unlink(path)

    def test_load_yaml_and_toml(self):
        with tempfile.TemporaryDirectory() as tmp:
            yaml_path = self._write(
                tmp,
                "c.yaml",
                "dispatch:\n  delay_ms: 300\nsites:\n  - url: a.com\n    routes:\n      - path: /x\n        handler: m:f\n",
            )
            toml_path = self._write(tmp, "c.toml", "[dispatch]\nrepeat_threshold_ms = 900\n")

            yaml_data = load_file(yaml_path)
            assert yaml_data["dispatch"]["delay_ms"] == 300
            assert yaml_data["sites"][0]["routes"][0]["handler"] == "m:f"
            assert load_file(toml_path) == {"dispatch": {"repeat_threshold_ms": 900}}

    def test_missing_file(self):
        with pytest.raises(ConfigurationError):
            load_file("/nonexistent/pagehook.config.json")

    def test_unsupported_format(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.ini", "[dispatch]\n")
            with pytest.raises(ConfigurationError):
                load_file(path)

    def test_parse_error(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.json", "{not json")
            with pytest.raises(ConfigurationError):
                load_file(path)

    def test_top_level_must_be_mapping(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.json", "[1, 2]")
            with pytest.raises(ConfigurationError):
                load_file(path)

    def test_load_sites_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            as_list = self._write(tmp, "sites.json", json.dumps([{"url": "a.com"}]))
            as_mapping = self._write(tmp, "sites.yaml", "sites:\n  - host: b.com\n")

            assert load_sites_file(as_list) == [{"url": "a.com"}]
            assert load_sites_file(as_mapping) == [{"host": "b.com"}]

    def test_sites_file_appended(self):
        with tempfile.TemporaryDirectory() as tmp:
            self._write(tmp, "sites.yaml", "- url: b.com\n  routes:\n    - path: /\n      handler: m:f\n")
            path = self._write(
                tmp,
                "c.json",
                json.dumps({"sites": [{"url": "a.com"}], "sites_file": "sites.yaml"}),
            )
            config = load_config(path, load_env=False)

        assert [site.url for site in config.sites] == ["a.com", "b.com"]
        assert config.sites[1].routes[0].handler == "m:f"
        assert "sites_file" not in config.to_dict()

    def test_missing_sites_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.json", json.dumps({"sites_file": "absent.json"}))
            with pytest.raises(ConfigurationError):
                load_config(path, load_env=False)

    def test_find_config_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            assert find_config_file(search_paths=[tmp]) is None
            path = self._write(tmp, "pagehook.config.yaml", "log_level: debug\n")
            assert find_config_file(search_paths=[tmp]) == path

    def test_load_config(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.json", json.dumps({"cdp": {"timeout": 5}}))
            config = load_config(path, load_env=False)
            assert config.cdp.timeout == 5.0

    def test_load_with_overrides(self):
        config = ConfigLoader(load_env=False, auto_find=False).load(
            overrides={"dispatch": {"delay_ms": 10}}
        )
        assert config.dispatch.delay_ms == 10

    def test_env_overrides_file(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write(tmp, "c.json", json.dumps({"dispatch": {"delay_ms": 100}}))
            os.environ["PAGEHOOK_DISPATCH_DELAY_MS"] = "700"
            try:
                config = load_config(path)
                assert config.dispatch.delay_ms == 700
                config = load_config(path, overrides={"dispatch": {"delay_ms": 1}})
                assert config.dispatch.delay_ms == 1
            finally:
                del os.environ["PAGEHOOK_DISPATCH_DELAY_MS"]

    def test_invalid_configuration(self):
        with pytest.raises(ConfigurationError):
            ConfigLoader(load_env=False, auto_find=False).load(
                overrides={"dispatch": {"delay_ms": "soon"}}
            )

    def test_merge_configs(self):
        base = {"dispatch": {"delay_ms": 1, "repeat_threshold_ms": 2}, "sites": [{"url": "a.com"}]}
        override = {"dispatch": {"delay_ms": 5}, "sites": [{"url": "b.com"}]}
        merged = merge_configs(base, override)

        assert merged["dispatch"] == {"delay_ms": 5, "repeat_threshold_ms": 2}
        assert merged["sites"] == [{"url": "b.com"}]
        assert base["dispatch"]["delay_ms"] == 1


class TestProfiles:
    """Tests for built-in profiles."""

    def test_load_debug_profile(self):
        profile = load_profile("debug")
        assert profile["log_level"] == "DEBUG"
        assert profile["strict_registry"] is True

    def test_profile_is_a_copy(self):
        load_profile("fast")["dispatch"]["delay_ms"] = 1
        assert load_profile("fast")["dispatch"]["delay_ms"] == 300

    def test_unknown_profile(self):
        with pytest.raises(ConfigurationError):
            load_profile("nonexistent")

    def test_load_config_with_profile(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = self._write_json(tmp, {"dispatch": {"repeat_threshold_ms": 50}})
            config = load_config_with_profile("fast", config_file=path)

        assert config.profile == "fast"
        assert config.dispatch.delay_ms == 300
        assert config.dispatch.repeat_threshold_ms == 50

    def test_passive_profile(self):
        config = load_config_with_profile(
            "passive", overrides={"cdp": {"endpoint": "ws://127.0.0.1:9222/devtools/browser/x"}}
        )
        assert config.detection.enabled is False
        assert config.cdp.endpoint.startswith("ws://")

    def _write_json(self, directory, data):
        path = Path(directory) / "c.json"
        path.write_text(json.dumps(data), encoding="utf-8")
        return path


class TestSaveConfig:
    """Tests for save_config."""

    def test_save_json(self):
        config = PagehookConfig(dispatch={"delay_ms": 123})
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.json"
            save_config(config, path)
            assert load_config(path, load_env=False).dispatch.delay_ms == 123

    def test_save_yaml(self):
        config = PagehookConfig(
            sites=[{"url": "a.com", "routes": [{"path": "/", "handler": on_orders}]}]
        )
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "out.yaml"
            save_config(config, path, format="yaml")
            data = load_file(path)
        assert data["sites"][0]["routes"][0]["handler"] == f"{__name__}:on_orders"

    def test_unsupported_format(self):
        with pytest.raises(ConfigurationError):
            save_config(PagehookConfig(), "out.ini", format="ini")
