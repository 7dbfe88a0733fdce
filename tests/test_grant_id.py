"""
Tests for snowdrift/grant_id.py - grant identifiers and their string encoding

These tests cover:
- encoding of every privilege grant scope
- decoding errors for part counts, flags and enum values
- database role scope restrictions
- ownership ids
"""

import pytest

from snowdrift.enums import (
    BulkOperationGrantKind,
    ObjectType,
    OnSchemaGrantKind,
    OnSchemaObjectGrantKind,
    OutboundPrivilegesBehavior,
    PluralObjectType,
    RoleKind,
)
from snowdrift.exceptions import InvalidGrantIdException
from snowdrift.grant_id import (
    BulkOperation,
    GrantOwnershipId,
    GrantPrivilegesId,
    ObjectRef,
    OnAccount,
    OnAccountObject,
    OnSchema,
    OnSchemaObject,
    parse_grant_ownership_id,
    parse_grant_privileges_id,
)
from snowdrift.identifiers import (
    AccountObjectIdentifier,
    DatabaseObjectIdentifier,
    SchemaObjectIdentifierWithArguments,
)

ROLE = AccountObjectIdentifier("ROLE")
DB_ROLE = DatabaseObjectIdentifier("DB", "ROLE")


# =============================================================================
# Encoding
# =============================================================================


class TestEncoding:
    """Tests for str(GrantPrivilegesId)"""

    def test_on_account(self):
        grant_id = GrantPrivilegesId(
            RoleKind.TO_ACCOUNT_ROLE,
            ROLE,
            OnAccount(),
            privileges=("CREATE DATABASE", "CREATE ROLE"),
            with_grant_option=True,
        )
        assert str(grant_id) == 'ToAccountRole|"ROLE"|true|false|CREATE DATABASE,CREATE ROLE|OnAccount'

    def test_on_account_object(self):
        grant_id = GrantPrivilegesId(
            RoleKind.TO_ACCOUNT_ROLE,
            ROLE,
            OnAccountObject(ObjectType.DATABASE, AccountObjectIdentifier("DB")),
            privileges=("USAGE",),
        )
        assert str(grant_id) == 'ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE|"DB"'

    def test_all_privileges_render_as_all(self):
        grant_id = GrantPrivilegesId(
            RoleKind.TO_ACCOUNT_ROLE,
            ROLE,
            OnAccountObject(ObjectType.WAREHOUSE, AccountObjectIdentifier("WH")),
            all_privileges=True,
            always_apply=True,
        )
        assert str(grant_id) == 'ToAccountRole|"ROLE"|false|true|ALL|OnAccountObject|WAREHOUSE|"WH"'

    def test_on_schema_for_database_role(self):
        grant_id = GrantPrivilegesId(
            RoleKind.TO_DATABASE_ROLE,
            DB_ROLE,
            OnSchema(OnSchemaGrantKind.ON_SCHEMA, DatabaseObjectIdentifier("DB", "SCH")),
            privileges=("USAGE",),
        )
        assert str(grant_id) == 'ToDatabaseRole|"DB"."ROLE"|false|false|USAGE|OnSchema|OnSchema|"DB"."SCH"'

    def test_on_future_tables_in_schema(self):
        scope = OnSchemaObject(
            OnSchemaObjectGrantKind.ON_FUTURE,
            BulkOperation(PluralObjectType.TABLES, BulkOperationGrantKind.IN_SCHEMA, DatabaseObjectIdentifier("DB", "SCH")),
        )
        grant_id = GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, scope, privileges=("SELECT",))
        assert str(grant_id) == 'ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnFuture|TABLES|InSchema|"DB"."SCH"'

    def test_on_function_with_arguments(self):
        scope = OnSchemaObject(
            OnSchemaObjectGrantKind.ON_OBJECT,
            ObjectRef(ObjectType.FUNCTION, SchemaObjectIdentifierWithArguments("DB", "SCH", "FN", ("VARCHAR",))),
        )
        grant_id = GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, scope, privileges=("USAGE",))
        assert str(grant_id).endswith('|OnSchemaObject|OnObject|FUNCTION|"DB"."SCH"."FN"(VARCHAR)')


# =============================================================================
# Decoding
# =============================================================================


class TestDecoding:
    """Tests for parse_grant_privileges_id()"""

    @pytest.mark.parametrize(
        "id_str",
        [
            'ToAccountRole|"ROLE"|true|false|CREATE DATABASE,CREATE ROLE|OnAccount',
            'ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE|"DB"',
            'ToAccountRole|"ROLE"|false|false|USAGE|OnSchema|OnAllSchemasInDatabase|"DB"',
            'ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnObject|TABLE|"DB"."SCH"."T"',
            'ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnAll|VIEWS|InDatabase|"DB"',
            'ToDatabaseRole|"DB"."ROLE"|false|false|SELECT|OnSchemaObject|OnFuture|TABLES|InSchema|"DB"."SCH"',
            'ToAccountRole|"a|b"|false|false|USAGE|OnAccountObject|DATABASE|"DB"',
        ],
    )
    def test_canonical_strings_survive(self, id_str):
        assert str(parse_grant_privileges_id(id_str)) == id_str

    def test_unquoted_names_are_accepted(self):
        grant_id = parse_grant_privileges_id("ToAccountRole|Role|false|false|USAGE|OnAccountObject|DATABASE|db")
        assert grant_id.role == AccountObjectIdentifier("Role")
        assert grant_id.scope.name == AccountObjectIdentifier("db")

    def test_all_privileges_spellings(self):
        for spelling in ("ALL", "ALL PRIVILEGES"):
            grant_id = parse_grant_privileges_id(f'ToAccountRole|"ROLE"|false|false|{spelling}|OnAccount')
            assert grant_id.all_privileges
            assert grant_id.privileges == ()

    def test_privileges_keep_declared_order(self):
        grant_id = parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|MONITOR,USAGE,OPERATE|OnAccountObject|WAREHOUSE|"WH"')
        assert grant_id.privileges == ("MONITOR", "USAGE", "OPERATE")

    def test_too_few_parts(self):
        with pytest.raises(InvalidGrantIdException, match="at least 6 parts"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|USAGE')

    def test_wrong_part_count_for_scope(self):
        with pytest.raises(InvalidGrantIdException, match="should hold 8 parts"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE')

    def test_bulk_scope_needs_ten_parts(self):
        with pytest.raises(InvalidGrantIdException, match="should hold 10 parts"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnAll|TABLES|InDatabase')

    def test_invalid_flag(self):
        with pytest.raises(InvalidGrantIdException, match='invalid WithGrantOption value: yes, should be either "true" or "false"'):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|yes|false|USAGE|OnAccount')

    def test_unknown_role_kind_lists_options(self):
        with pytest.raises(InvalidGrantIdException, match="valid options are ToAccountRole"):
            parse_grant_privileges_id('ToUser|"ROLE"|false|false|USAGE|OnAccount')

    def test_enum_values_are_case_sensitive(self):
        with pytest.raises(InvalidGrantIdException):
            parse_grant_privileges_id('toaccountrole|"ROLE"|false|false|USAGE|OnAccount')

    def test_empty_privileges(self):
        with pytest.raises(InvalidGrantIdException, match="invalid Privileges value"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false||OnAccount')

    def test_ownership_rejected(self):
        with pytest.raises(InvalidGrantIdException, match="OWNERSHIP"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|OWNERSHIP|OnAccountObject|DATABASE|"DB"')

    def test_schema_object_scope_rejects_account_object_type(self):
        with pytest.raises(InvalidGrantIdException, match="is not a schema object type"):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|USAGE|OnSchemaObject|OnObject|WAREHOUSE|"WH"')

    def test_bad_identifier_becomes_grant_id_error(self):
        with pytest.raises(InvalidGrantIdException):
            parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|SELECT|OnSchemaObject|OnObject|TABLE|"DB"."T"')


class TestDatabaseRoleScopes:
    """Database roles only receive privileges inside their own database"""

    def test_on_account_rejected(self):
        with pytest.raises(InvalidGrantIdException, match="on the account"):
            GrantPrivilegesId(RoleKind.TO_DATABASE_ROLE, DB_ROLE, OnAccount(), privileges=("USAGE",))

    def test_other_database_rejected(self):
        with pytest.raises(InvalidGrantIdException, match="outside of database DB"):
            GrantPrivilegesId(
                RoleKind.TO_DATABASE_ROLE,
                DB_ROLE,
                OnSchema(OnSchemaGrantKind.ON_SCHEMA, DatabaseObjectIdentifier("OTHER", "SCH")),
                privileges=("USAGE",),
            )

    def test_own_database_accepted(self):
        grant_id = GrantPrivilegesId(
            RoleKind.TO_DATABASE_ROLE,
            DB_ROLE,
            OnAccountObject(ObjectType.DATABASE, AccountObjectIdentifier("DB")),
            privileges=("USAGE",),
        )
        assert grant_id.scope.name.name == "DB"

    def test_role_shape_must_match_kind(self):
        with pytest.raises(InvalidGrantIdException, match="two parts"):
            GrantPrivilegesId(RoleKind.TO_DATABASE_ROLE, ROLE, OnAccount(), privileges=("USAGE",))


class TestValidation:
    """Invariants checked when a GrantPrivilegesId is built"""

    def test_privileges_and_all_are_exclusive(self):
        with pytest.raises(InvalidGrantIdException, match="mutually exclusive"):
            GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, OnAccount(), privileges=("USAGE",), all_privileges=True)

    def test_something_must_be_granted(self):
        with pytest.raises(InvalidGrantIdException, match="at least one privilege"):
            GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, OnAccount())

    def test_duplicate_privileges(self):
        with pytest.raises(InvalidGrantIdException, match="duplicated privilege"):
            GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, OnAccount(), privileges=("USAGE", "usage"))

    def test_schemas_are_not_schema_objects(self):
        scope = OnSchemaObject(
            OnSchemaObjectGrantKind.ON_ALL,
            BulkOperation(PluralObjectType.SCHEMAS, BulkOperationGrantKind.IN_DATABASE, AccountObjectIdentifier("DB")),
        )
        with pytest.raises(InvalidGrantIdException, match="OnSchema"):
            GrantPrivilegesId(RoleKind.TO_ACCOUNT_ROLE, ROLE, scope, privileges=("USAGE",))

    def test_same_grant_target(self):
        left = parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE|"DB"')
        right = parse_grant_privileges_id('ToAccountRole|"ROLE"|true|false|USAGE,MONITOR|OnAccountObject|DATABASE|"DB"')
        other = parse_grant_privileges_id('ToAccountRole|"ROLE"|false|false|USAGE|OnAccountObject|DATABASE|"DB2"')
        assert left.same_grant_target(right)
        assert not left.same_grant_target(other)


# =============================================================================
# Ownership
# =============================================================================


class TestOwnershipId:
    """Tests for GrantOwnershipId and parse_grant_ownership_id()"""

    def test_on_object(self):
        grant_id = GrantOwnershipId(
            RoleKind.TO_ACCOUNT_ROLE,
            ROLE,
            OnSchemaObject(OnSchemaObjectGrantKind.ON_OBJECT, ObjectRef(ObjectType.DATABASE, AccountObjectIdentifier("D"))),
            OutboundPrivilegesBehavior.COPY,
        )
        assert str(grant_id) == 'ToAccountRole|"ROLE"|COPY|OnObject|DATABASE|"D"'

    @pytest.mark.parametrize(
        "id_str",
        [
            'ToAccountRole|"ROLE"|COPY|OnObject|DATABASE|"D"',
            'ToAccountRole|"ROLE"||OnObject|TABLE|"DB"."SCH"."T"',
            'ToDatabaseRole|"DB"."ROLE"|REVOKE|OnAll|TABLES|InSchema|"DB"."SCH"',
            'ToAccountRole|"ROLE"||OnFuture|VIEWS|InDatabase|"DB"',
        ],
    )
    def test_canonical_strings_survive(self, id_str):
        assert str(parse_grant_ownership_id(id_str)) == id_str

    def test_unknown_outbound_privileges(self):
        with pytest.raises(InvalidGrantIdException, match="invalid OutboundPrivilegesBehavior: KEEP"):
            parse_grant_ownership_id('ToAccountRole|"ROLE"|KEEP|OnObject|DATABASE|"D"')

    def test_object_kind_needs_six_parts(self):
        with pytest.raises(InvalidGrantIdException, match="6 parts"):
            parse_grant_ownership_id('ToAccountRole|"ROLE"|COPY|OnObject|DATABASE|"D"|extra')

    def test_bulk_kind_needs_seven_parts(self):
        with pytest.raises(InvalidGrantIdException, match="7 parts"):
            parse_grant_ownership_id('ToAccountRole|"ROLE"|COPY|OnAll|TABLES|"DB"')
