"""Tests for the Normalizer: defaulting, pruning and route domain handling."""
import copy
import json

import pytest
from onboarder.engine import Normalizer, apply_defaults, prune_empty, strip_volatile
from onboarder.engine.normalizer import tenants_of


def normalize(declaration, current=None, original=None):
    return Normalizer().normalize(declaration, current or {}, original or {"Common": {}})


class TestApplyDefaults:
    """Tests for baseline defaulting from the original config."""

    def test_missing_classes_come_from_original(self):
        """Omitted classes of truth are restored from the original config."""
        declaration = {
            "parsed": True,
            "Common": {
                "NTP": {"servers": ["0.pool.ntp.org"]},
            },
        }
        original = {
            "Common": {
                "DNS": {"nameServers": ["1.1.1.1"]},
                "NTP": {"servers": ["time.example.com"]},
                "VLAN": {"internal": {"name": "internal", "tag": 10}},
            }
        }

        result = normalize(declaration, original=original)

        assert result["Common"]["DNS"] == {"nameServers": ["1.1.1.1"]}
        assert result["Common"]["NTP"] == {"servers": ["0.pool.ntp.org"]}
        assert result["Common"]["VLAN"] == {"internal": {"name": "internal", "tag": 10}}

    def test_empty_class_counts_as_omitted(self):
        """A class declared as {} is restored from the original config."""
        declaration = {"parsed": True, "Common": {"DNS": {}}}
        original = {"Common": {"DNS": {"nameServers": ["8.8.8.8"]}}}

        result = normalize(declaration, original=original)

        assert result["Common"]["DNS"] == {"nameServers": ["8.8.8.8"]}

    def test_defaults_come_from_original_not_current(self):
        """Current config is never used as a baseline."""
        declaration = {"parsed": True, "Common": {}}
        current = {"parsed": True, "Common": {"DNS": {"nameServers": ["10.0.0.1"]}}}
        original = {"Common": {"DNS": {"nameServers": ["8.8.8.8"]}}}

        result = normalize(declaration, current=current, original=original)

        assert result["Common"]["DNS"] == {"nameServers": ["8.8.8.8"]}

    def test_default_is_a_copy(self):
        """Editing the result never reaches the original config."""
        declaration = {"parsed": True, "Common": {}}
        original = {"Common": {"DNS": {"nameServers": ["8.8.8.8"]}}}

        result = normalize(declaration, original=original)
        result["Common"]["DNS"]["nameServers"].append("9.9.9.9")

        assert original["Common"]["DNS"]["nameServers"] == ["8.8.8.8"]

    def test_authentication_inherits_remote_users_defaults(self):
        """Authentication without remoteUsersDefaults keeps the original ones."""
        declaration = {
            "parsed": True,
            "Common": {"Authentication": {"enabledSourceType": "radius"}},
        }
        original = {
            "Common": {
                "Authentication": {
                    "enabledSourceType": "local",
                    "remoteUsersDefaults": {"role": "no-access", "partitionAccess": "all"},
                }
            }
        }

        result = normalize(declaration, original=original)

        assert result["Common"]["Authentication"] == {
            "enabledSourceType": "radius",
            "remoteUsersDefaults": {"role": "no-access", "partitionAccess": "all"},
        }

    def test_unrelated_keys_not_defaulted(self):
        """Only classes of truth are restored."""
        declaration = {"parsed": True, "Common": {}}
        original = {"Common": {"License": {"regKey": "AAAA"}}}

        result = normalize(declaration, original=original)

        assert "License" not in result["Common"]


class TestHostname:
    """Tests for folding the legacy hostname alias into System."""

    def test_alias_overrides_original_system_hostname(self):
        """Common.hostname wins over the hostname restored from the original."""
        declaration = {"parsed": True, "Common": {"hostname": "my.new.hostname"}}
        original = {"Common": {"System": {"hostname": "my.old.hostname"}}}

        result = normalize(declaration, original=original)

        assert result["Common"]["System"]["hostname"] == "my.new.hostname"
        assert "hostname" not in result["Common"]

    def test_explicit_system_hostname_wins_over_alias(self):
        """A hostname declared on System itself is kept."""
        declaration = {
            "parsed": True,
            "Common": {
                "hostname": "alias.example.com",
                "System": {"hostname": "system.example.com"},
            },
        }

        result = normalize(declaration)

        assert result["Common"]["System"]["hostname"] == "system.example.com"
        assert "hostname" not in result["Common"]

    def test_alias_keeps_other_system_properties(self):
        """Folding the alias does not drop other System settings."""
        declaration = {
            "parsed": True,
            "Common": {"hostname": "bigip.example.com", "System": {"consoleInactivityTimeout": 60}},
        }

        result = normalize(declaration)

        assert result["Common"]["System"] == {
            "consoleInactivityTimeout": 60,
            "hostname": "bigip.example.com",
        }

    def test_apply_defaults_without_original(self):
        """No original config just means nothing is restored."""
        declaration = {"Common": {"hostname": "bigip.example.com"}}

        apply_defaults(declaration, None)

        assert declaration == {"Common": {"System": {"hostname": "bigip.example.com"}}}


class TestPruneAndVolatile:
    """Tests for empty-class pruning and volatile key removal."""

    def test_prune_empty_classes(self):
        """Classes with an empty body are removed."""
        declaration = {
            "parsed": True,
            "Common": {"VLAN": {}, "DNS": {"nameServers": ["1.1.1.1"]}},
            "Tenant2": {"RouteDomain": {}},
        }

        prune_empty(declaration)

        assert declaration == {
            "parsed": True,
            "Common": {"DNS": {"nameServers": ["1.1.1.1"]}},
            "Tenant2": {},
        }

    def test_strip_volatile_any_depth(self):
        """generation, lastUpdateMicros, selfLink and kind go at every level."""
        config = {
            "Common": {
                "VLAN": {
                    "internal": {
                        "tag": 10,
                        "generation": 12,
                        "selfLink": "https://localhost/mgmt/tm/net/vlan/~Common~internal",
                        "interfaces": [{"name": "1.1", "kind": "tm:net:vlan:interfaces"}],
                    }
                }
            }
        }

        result = strip_volatile(config)

        assert result == {
            "Common": {"VLAN": {"internal": {"tag": 10, "interfaces": [{"name": "1.1"}]}}}
        }
        assert config["Common"]["VLAN"]["internal"]["generation"] == 12

    def test_strip_volatile_is_on_normalizer(self):
        """The normalizer exposes strip_volatile for callers."""
        assert Normalizer.strip_volatile({"kind": "x", "a": 1}) == {"a": 1}

    def test_tenants_skip_controls_and_scalars(self):
        """Only dict-valued keys other than controls are tenants."""
        declaration = {"parsed": True, "controls": {"dryRun": True}, "Common": {}, "T1": {}}

        assert tenants_of(declaration) == ["Common", "T1"]


class TestNormalizerPurity:
    """Tests for deterministic, side-effect free normalization."""

    def test_inputs_not_mutated(self):
        """normalize() leaves all three inputs untouched."""
        declaration = {
            "parsed": True,
            "Common": {
                "hostname": "bigip.example.com",
                "RouteDomain": {"rd0": {"id": 0}},
                "HTTPD": {"allow": "all"},
            },
        }
        current = {"parsed": True, "Common": {"RouteDomain": {"0": {"id": 0, "vlans": []}}}}
        original = {"Common": {"System": {"hostname": "old"}}}
        before = copy.deepcopy((declaration, current, original))

        normalize(declaration, current=current, original=original)

        assert (declaration, current, original) == before

    def test_output_is_byte_identical(self):
        """Equal inputs give byte-identical JSON output."""
        declaration = {
            "parsed": True,
            "Common": {
                "RoutingBGP": {
                    "bgp1": {
                        "localAS": 65010,
                        "addressFamily": [{"name": "all"}],
                        "neighbors": [{"name": "10.0.0.2"}, {"name": "10.0.0.1"}],
                    }
                },
                "FirewallPortList": {"ports": {"ports": [443, 80]}},
            },
        }

        first = normalize(copy.deepcopy(declaration))
        second = normalize(copy.deepcopy(declaration))

        assert json.dumps(first) == json.dumps(second)


class TestRouteDomains:
    """Tests for route domain coalescing and VLAN reconciliation."""

    def test_no_route_domains(self):
        """Nothing is invented when no route domain exists anywhere."""
        result = normalize({"parsed": True, "Common": {}})

        assert "RouteDomain" not in result["Common"]

    def test_rename_default_route_domain(self):
        """Route domains with id 0 become "0"; the last one declared wins."""
        declaration = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "rd0": {"id": 0},
                    "rd0_2": {"id": 0},
                    "rd1": {"id": 1},
                }
            },
        }
        original = {"Common": {"RouteDomain": {"0": {"id": 0, "vlan": []}}}}

        result = normalize(declaration, original=original)
        route_domains = result["Common"]["RouteDomain"]

        assert list(route_domains) == ["0", "rd1"]
        assert route_domains["0"]["id"] == 0
        assert route_domains["0"]["name"] == "0"
        assert "vlan" not in route_domains["0"]
        assert route_domains["rd1"]["id"] == 1

    def test_copy_default_route_domain_from_current(self):
        """Route domain 0 is taken from current config when not declared."""
        declaration = {"parsed": True, "Common": {"RouteDomain": {"rd1": {"id": 1}}}}
        current = {"parsed": True, "Common": {"RouteDomain": {"0": {"id": 0}}}}

        result = normalize(declaration, current=current)
        route_domains = result["Common"]["RouteDomain"]

        assert route_domains["0"]["id"] == 0
        assert route_domains["rd1"]["id"] == 1

    def test_parent_gets_full_path(self):
        """Bare parent names are prefixed with the partition."""
        declaration = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "rd1": {"id": 1},
                    "rd2": {"id": 2, "parent": "rd1"},
                    "rd3": {"id": 3, "parent": "/Common/rd2"},
                }
            },
        }
        current = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "0": {"id": 0},
                    "rd1": {"id": 1, "parent": "/Common/rd1"},
                    "rd2": {"id": 2, "parent": "/Common/rd2"},
                }
            },
        }
        original = {"Common": {"RouteDomain": {"0": {"id": 0}}}}

        result = normalize(declaration, current=current, original=original)
        route_domains = result["Common"]["RouteDomain"]

        assert "parent" not in route_domains["0"]
        assert "parent" not in route_domains["rd1"]
        assert route_domains["rd2"]["parent"] == "/Common/rd1"
        assert route_domains["rd3"]["parent"] == "/Common/rd2"

    def test_parent_follows_default_rename(self):
        """A parent naming a renamed id-0 route domain points at /Common/0."""
        declaration = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "myDefault": {"id": 0},
                    "rd5": {"id": 5, "parent": "myDefault"},
                }
            },
        }

        result = normalize(declaration)

        assert result["Common"]["RouteDomain"]["rd5"]["parent"] == "/Common/0"

    def test_route_domain_vlans(self):
        """VLAN lists are reconciled with declared and current VLANs."""
        declaration = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "0": {
                        "id": 0,
                        "vlans": [
                            "nonExistingVlan",
                            "/Partition/vlan",
                            "/Partition/folder/vlan",
                            "/Common/vlan",
                            "/Common/folder/vlan",
                            "vlan1",
                            "/Common/vlan2",
                        ],
                    },
                    "rd1": {
                        "id": 1,
                        "vlans": [
                            "nonExistingVlan2",
                            "/Partition1/vlan",
                            "/Partition1/folder/vlan",
                            "/Common/vlan10",
                            "/Common/folder/vlan2",
                            "vlan3",
                            "/Common/vlan4",
                            "/Common/rd1Vlan",
                        ],
                    },
                    "rd2": {"id": 2},
                    "rd3": {"id": 3},
                },
                "VLAN": {
                    "vlan1": {"tag": 1},
                    "vlan2": {"tag": 2},
                    "vlan3": {"tag": 3},
                    "vlan4": {"tag": 4},
                    "vlan5": {"tag": 5},
                    "vlan6": {"tag": 6},
                },
            },
        }
        current = {
            "parsed": True,
            "Common": {
                "RouteDomain": {
                    "0": {"id": 0, "vlans": ["/Common/http-tunnel", "/Common/vlan"]},
                    "rd1": {"id": 1, "vlans": ["/Common/socks-tunnel"]},
                    "rd2": {"id": 2, "vlans": ["/Common/rd2Vlan", "/Common/rd1Vlan"]},
                }
            },
        }
        original = {"Common": {"RouteDomain": {"0": {"id": 0, "vlans": []}}}}

        result = normalize(declaration, current=current, original=original)
        route_domains = result["Common"]["RouteDomain"]

        assert sorted(route_domains["0"]["vlans"]) == sorted([
            "/Common/http-tunnel",
            "/Partition/vlan",
            "/Partition/folder/vlan",
            "/Common/vlan",
            "/Common/folder/vlan",
            "vlan1",
            "/Common/vlan2",
            "vlan5",
            "vlan6",
        ])
        assert sorted(route_domains["rd1"]["vlans"]) == sorted([
            "/Common/socks-tunnel",
            "/Partition1/vlan",
            "/Partition1/folder/vlan",
            "/Common/folder/vlan2",
            "vlan3",
            "/Common/vlan4",
            "/Common/rd1Vlan",
        ])
        assert route_domains["rd2"]["vlans"] == ["/Common/rd2Vlan"]
        assert "vlans" not in route_domains["rd3"]


class TestNormalizerRegistry:
    """Tests for the pluggable fixup registry."""

    def test_custom_registry_runs_in_order(self):
        """A custom registry replaces the default one and runs per tenant."""
        seen = []

        def first(ctx):
            seen.append(("first", ctx.tenant))

        def second(ctx):
            seen.append(("second", ctx.tenant))

        normalizer = Normalizer(registry=[("A", first), ("B", second)])
        normalizer.normalize({"parsed": True, "Common": {}, "Tenant1": {"x": 1}}, {}, {})

        assert seen == [
            ("first", "Common"),
            ("second", "Common"),
            ("first", "Tenant1"),
            ("second", "Tenant1"),
        ]

    def test_validation_error_surfaces(self):
        """Fixups raising ValidationError abort normalization."""
        from onboarder.errors import ValidationError

        declaration = {
            "parsed": True,
            "Common": {
                "FailoverUnicast": {
                    "unicastAddress": [{"ip": "10.0.0.2", "port": 1026}],
                    "address": "10.1.1.8",
                    "port": 12,
                }
            },
        }

        with pytest.raises(ValidationError) as exc:
            normalize(declaration)

        assert "Cannot have Failover Unicasts with both address and addressPort" in str(exc.value)
        assert exc.value.code == 422
