"""Tests for the default declaration parser."""
import pytest
from onboarder.engine import DeclarationParser, ParseError
from onboarder.engine.parser import dereference_pointer
from onboarder.errors import ValidationError


class TestDeclarationParser:
    """Tests for DeclarationParser."""

    def test_groups_objects_by_class(self):
        """Named objects are grouped under their class and get a name."""
        declaration = {
            "schemaVersion": "1.0.0",
            "class": "Device",
            "Common": {
                "class": "Tenant",
                "internal": {"class": "VLAN", "tag": 10, "interfaces": [{"name": "1.1"}]},
                "external": {"class": "VLAN", "tag": 20},
            },
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed["parsed"] is True
        assert parsed["Common"]["VLAN"] == {
            "internal": {"tag": 10, "interfaces": [{"name": "1.1"}], "name": "internal"},
            "external": {"tag": 20, "name": "external"},
        }

    def test_nameless_classes_merge(self):
        """Singleton classes map straight to their properties."""
        declaration = {
            "class": "Device",
            "Common": {
                "class": "Tenant",
                "myDns": {"class": "DNS", "nameServers": ["1.1.1.1"]},
                "mySystem": {"class": "System", "hostname": "bigip.example.com"},
            },
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed["Common"]["DNS"] == {"nameServers": ["1.1.1.1"]}
        assert parsed["Common"]["System"] == {"hostname": "bigip.example.com"}

    def test_user_name_kept(self):
        """An explicit name property is not overwritten by the key."""
        declaration = {
            "Common": {
                "class": "Tenant",
                "mgmt": {"class": "ManagementIp", "name": "192.0.2.10/24"},
            }
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed["Common"]["ManagementIp"]["mgmt"]["name"] == "192.0.2.10/24"

    def test_provision_defaults_to_none(self):
        """Modules missing from Provision are set to none."""
        declaration = {
            "Common": {
                "class": "Tenant",
                "myProvisioning": {"class": "Provision", "ltm": "nominal"},
            }
        }

        parsed = DeclarationParser(declaration, ["ltm", "asm", "gtm"]).parse()

        assert parsed["Common"]["Provision"] == {"ltm": "nominal", "asm": "none", "gtm": "none"}

    def test_scalar_tenant_properties_kept(self):
        """Plain tenant values such as the legacy hostname survive."""
        declaration = {"Common": {"class": "Tenant", "hostname": "bigip.example.com"}}

        parsed = DeclarationParser(declaration).parse()

        assert parsed["Common"] == {"hostname": "bigip.example.com"}

    def test_non_tenants_ignored(self):
        """controls and other non-tenant keys are not parsed."""
        declaration = {
            "class": "Device",
            "controls": {"dryRun": True},
            "Common": {"class": "Tenant"},
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed == {"Common": {}, "parsed": True}

    def test_pointer_dereferenced(self):
        """Pointers to strings are replaced with the string."""
        declaration = {
            "Common": {
                "class": "Tenant",
                "mySelf": {"class": "SelfIp", "address": "10.0.0.1/24", "vlan": "internal"},
                "myRoute": {"class": "Route", "gw": "/Common/mySelf/address", "network": "default"},
            }
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed["Common"]["Route"]["myRoute"]["gw"] == "10.0.0.1/24"

    def test_object_path_not_dereferenced(self):
        """Pointers that resolve to objects are left as paths."""
        declaration = {
            "Common": {
                "class": "Tenant",
                "internal": {"class": "VLAN", "tag": 10},
                "rd1": {"class": "RouteDomain", "id": 1, "vlans": ["/Common/internal"]},
            }
        }

        parsed = DeclarationParser(declaration).parse()

        assert parsed["Common"]["RouteDomain"]["rd1"]["vlans"] == ["/Common/internal"]

    def test_dereference_pointer_lists(self):
        """Numeric pointer segments index into lists."""
        declaration = {"a": {"b": ["x", "y"]}}

        assert dereference_pointer(declaration, "/a/b/1") == "y"
        assert dereference_pointer(declaration, "/a/b/5") is None
        assert dereference_pointer(declaration, "plain") == "plain"

    def test_pointer_past_scalar_unresolved(self):
        """A pointer that continues past a string value stays a path."""
        declaration = {
            "Common": {
                "class": "Tenant",
                "hostname": "bigip.example.com",
                "myDns": {"class": "DNS", "search": ["/Common/hostname/zzz", "/Common/hostname"]},
            }
        }

        parsed = DeclarationParser(declaration).parse()

        assert dereference_pointer(declaration, "/Common/hostname/zzz") is None
        assert dereference_pointer(declaration, "/Common/missing/zzz") is None
        assert parsed["Common"]["DNS"]["search"] == ["/Common/hostname/zzz", "bigip.example.com"]

    def test_missing_class_raises(self):
        """An object without a class is a parse error."""
        declaration = {"Common": {"class": "Tenant", "broken": {"tag": 10}}}

        with pytest.raises(ParseError) as exc:
            DeclarationParser(declaration).parse()

        assert "broken" in str(exc.value)
        assert isinstance(exc.value, ValidationError)

    def test_input_not_mutated(self):
        """Parsing works on a copy."""
        declaration = {"Common": {"class": "Tenant", "v": {"class": "VLAN", "tag": 1}}}

        DeclarationParser(declaration).parse()

        assert declaration == {"Common": {"class": "Tenant", "v": {"class": "VLAN", "tag": 1}}}
