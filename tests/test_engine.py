"""Tests for the scaffolding engine (flutter_scaffold.engine).

Covers:
- New feature into an empty project (paths, content, barrel)
- Widget variants and feature placement
- Conflicts on a second invocation, nothing written
- Identifier validation before template lookup
- State migration advisories
- Preconditions, dry runs, dependency warnings, toolchain steps
- ScaffoldEngine.plan / verify
"""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from flutter_scaffold.scaffolder.checker import Action
from flutter_scaffold.toolchain import ToolchainResult

pytestmark = pytest.mark.unit

FEATURE_DIR = "lib/features/products"
FEATURE_BARREL = f"{FEATURE_DIR}/products.dart"
FEATURE_FILES = [
    f"{FEATURE_DIR}/domain/entities/products.dart",
    f"{FEATURE_DIR}/domain/repositories/products_repository.dart",
    f"{FEATURE_DIR}/data/repositories/products_repository_impl.dart",
    f"{FEATURE_DIR}/presentation/widgets/products_card.dart",
    f"{FEATURE_DIR}/presentation/providers/products_providers.dart",
    f"{FEATURE_DIR}/presentation/pages/products_list_page.dart",
]


# ---------------------------------------------------------------------------
# flutter-new-feature
# ---------------------------------------------------------------------------


class TestNewFeature:
    def test_creates_riverpod_feature(self, engine, memory_fs):
        report = engine.run("flutter-new-feature", ["products", "--state", "riverpod"])

        assert report.success, report.errors
        assert report.written is True
        assert report.created == FEATURE_FILES
        assert report.modified == []
        assert report.variant == "riverpod"
        assert sorted(memory_fs.files) == sorted(FEATURE_FILES)

    def test_barrel_is_opt_in(self, engine, memory_fs):
        report = engine.run("flutter-new-feature", ["products", "--barrel"])
        assert report.created == FEATURE_FILES[:4] + [FEATURE_BARREL] + FEATURE_FILES[4:]
        assert FEATURE_BARREL in memory_fs.files

    def test_rendered_content(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["user_profile", "--barrel"])
        base = "lib/features/user_profile"

        entity = memory_fs.files[f"{base}/domain/entities/user_profile.dart"]
        assert "class UserProfile {" in entity

        providers = memory_fs.files[f"{base}/presentation/providers/user_profile_providers.dart"]
        assert "import 'package:app/features/user_profile/" in providers
        assert "final userProfileListProvider" in providers

        assert memory_fs.files[f"{base}/user_profile.dart"].splitlines() == [
            "export 'domain/entities/user_profile.dart';",
            "export 'domain/repositories/user_profile_repository.dart';",
            "export 'data/repositories/user_profile_repository_impl.dart';",
            "export 'presentation/widgets/user_profile_card.dart';",
            "export 'presentation/providers/user_profile_providers.dart';",
            "export 'presentation/pages/user_profile_list_page.dart';",
        ]

    def test_bloc_variant(self, engine, memory_fs):
        report = engine.run("flutter-new-feature", ["products", "--state", "bloc"])
        assert report.success
        assert f"{FEATURE_DIR}/presentation/bloc/products_bloc.dart" in report.created
        assert not any("providers" in path for path in report.created)

    def test_crud_and_tests(self, engine, memory_fs):
        report = engine.run("flutter-new-feature", ["products", "--crud", "--with-tests", "--barrel"])
        assert report.success
        assert f"{FEATURE_DIR}/domain/usecases/products_usecases.dart" in report.created
        assert f"{FEATURE_DIR}/presentation/pages/products_form_page.dart" in report.created
        assert "test/features/products/data/products_repository_impl_test.dart" in report.created
        assert "test/features/products/presentation/products_providers_test.dart" in report.created
        barrel = memory_fs.files[FEATURE_BARREL]
        assert "export 'domain/usecases/products_usecases.dart';" in barrel

    def test_next_steps_and_agents(self, engine):
        report = engine.run("flutter-new-feature", ["products"])
        list_page = "package:app/features/products/presentation/pages/products_list_page.dart"
        assert any(list_page in step for step in report.next_steps)
        assert report.agents == ["flutter-architect", "flutter-state-management"]

    def test_second_run_conflicts_and_writes_nothing(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["products"])
        snapshot = dict(memory_fs.files)
        writes_before = list(memory_fs.writes)

        report = engine.run("flutter-new-feature", ["products"])

        assert report.success is False
        assert report.written is False
        assert report.created == []
        assert {e.type for e in report.errors} == {"FileAlreadyExists"}
        assert sorted(e.message.split()[3] for e in report.errors) == sorted(FEATURE_FILES)
        assert memory_fs.writes == writes_before
        assert memory_fs.files == snapshot

    def test_force_overwrites(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["products", "--barrel"])
        memory_fs.files[f"{FEATURE_DIR}/domain/entities/products.dart"] = "// edited\n"

        report = engine.run("flutter-new-feature", ["products", "--barrel", "--force"])

        assert report.success
        assert f"{FEATURE_DIR}/domain/entities/products.dart" in report.modified
        assert "class Products {" in memory_fs.files[f"{FEATURE_DIR}/domain/entities/products.dart"]
        assert [s.reason for s in report.skipped] == ["barrel already exports every line"]

    def test_dry_run_writes_nothing(self, engine, memory_fs):
        report = engine.run("flutter-new-feature", ["products"], dry_run=True)
        assert report.success
        assert report.dry_run is True
        assert report.written is False
        assert [p.path for p in report.planned] == FEATURE_FILES
        assert all(p.action is Action.CREATE for p in report.planned)
        assert memory_fs.writes == []

    def test_no_dependency_warnings_without_pubspec(self, engine):
        assert engine.run("flutter-new-feature", ["products", "--state", "bloc"]).warnings == []

    def test_dependency_warnings_with_pubspec(self, flutter_engine, flutter_fs):
        report = flutter_engine.run("flutter-new-feature", ["products", "--state", "bloc"])
        assert report.success
        assert report.warnings == [
            "pubspec.yaml does not declare 'flutter_bloc' (run: flutter pub add flutter_bloc)",
            "pubspec.yaml does not declare 'equatable' (run: flutter pub add equatable)",
        ]
        entity_import = "import 'package:shop_app/features/products/domain/entities/products.dart';"
        assert entity_import in flutter_fs.files[f"{FEATURE_DIR}/domain/repositories/products_repository.dart"]

    def test_declared_dependency_not_warned(self, flutter_engine):
        report = flutter_engine.run("flutter-new-feature", ["products", "--state", "riverpod"])
        assert report.warnings == []


# ---------------------------------------------------------------------------
# flutter-new-widget
# ---------------------------------------------------------------------------


class TestNewWidget:
    def test_consumer_variant_only(self, engine, memory_fs):
        report = engine.run("flutter-new-widget", ["UserAvatar", "--type", "consumer"])

        assert report.success
        assert report.created == [
            "lib/shared/widgets/widgets.dart",
            "lib/shared/widgets/user_avatar.dart",
        ]
        provenance = {tag for entry in report.planned for tag in entry.provenance}
        assert "new_widget/consumer/widget.dart.j2" in provenance
        assert not any(
            tag.startswith(("new_widget/stateless", "new_widget/hook", "new_widget/stateful"))
            for tag in provenance
        )

        widget = memory_fs.files["lib/shared/widgets/user_avatar.dart"]
        assert "import 'package:flutter_riverpod/flutter_riverpod.dart';" in widget
        assert "class UserAvatar extends ConsumerWidget" in widget
        assert "HookConsumerWidget" not in widget

    def test_barrel_accumulates_widgets(self, engine, memory_fs):
        engine.run("flutter-new-widget", ["UserAvatar"])
        report = engine.run("flutter-new-widget", ["PriceTag"])

        assert report.success
        assert report.modified == ["lib/shared/widgets/widgets.dart"]
        assert memory_fs.files["lib/shared/widgets/widgets.dart"] == (
            "export 'user_avatar.dart';\nexport 'price_tag.dart';\n"
        )

    def test_acronym_widget_file_name(self, engine, memory_fs):
        report = engine.run("flutter-new-widget", ["HTTPClient"])

        assert report.success
        assert report.created == [
            "lib/shared/widgets/widgets.dart",
            "lib/shared/widgets/http_client.dart",
        ]
        assert "class HTTPClient extends StatelessWidget" in memory_fs.files[
            "lib/shared/widgets/http_client.dart"
        ]
        assert memory_fs.files["lib/shared/widgets/widgets.dart"] == "export 'http_client.dart';\n"

    def test_directory_at_barrel_path_is_reported(self, engine, memory_fs):
        memory_fs.mkdir("lib/shared/widgets/widgets.dart")

        report = engine.run("flutter-new-widget", ["UserAvatar"])

        assert report.success is False
        assert [e.type for e in report.errors] == ["FileAlreadyExists"]
        assert "lib/shared/widgets/widgets.dart" in report.errors[0].message
        assert memory_fs.writes == []

    def test_invalid_identifier_before_lookup(self, engine, memory_fs):
        with patch.object(engine.registry, "lookup", wraps=engine.registry.lookup) as lookup:
            report = engine.run("flutter-new-widget", ["bad_name"])

        assert report.success is False
        assert [e.type for e in report.errors] == ["InvalidIdentifier"]
        lookup.assert_not_called()
        assert memory_fs.writes == []

    def test_feature_must_exist(self, engine, memory_fs):
        report = engine.run("flutter-new-widget", ["PriceTag", "--feature", "products"])
        assert [e.type for e in report.errors] == ["PreconditionNotMet"]
        assert "lib/features/products" in report.errors[0].message
        assert memory_fs.writes == []

    def test_widget_inside_feature(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["products"])
        report = engine.run(
            "flutter-new-widget", ["PriceTag", "--feature", "products", "--with-tests", "--type", "hook"]
        )
        assert report.success, report.errors
        assert report.created == [
            f"{FEATURE_DIR}/presentation/widgets/widgets.dart",
            f"{FEATURE_DIR}/presentation/widgets/price_tag.dart",
            "test/features/products/presentation/widgets/price_tag_test.dart",
        ]
        test_body = memory_fs.files["test/features/products/presentation/widgets/price_tag_test.dart"]
        assert "import 'package:app/features/products/presentation/widgets/price_tag.dart';" in test_body
        assert "shared/widgets" not in test_body


# ---------------------------------------------------------------------------
# flutter-add-state
# ---------------------------------------------------------------------------


class TestAddState:
    def test_preconditions_on_empty_project(self, engine, memory_fs):
        report = engine.run("flutter-add-state", ["orders", "--type", "bloc"])
        assert [e.type for e in report.errors] == ["PreconditionNotMet", "PreconditionNotMet"]
        assert memory_fs.writes == []

    def test_existing_page_conflicts_without_migrate(self, engine):
        engine.run("flutter-new-feature", ["orders"])
        report = engine.run("flutter-add-state", ["orders", "--type", "bloc"])
        assert [e.type for e in report.errors] == ["FileAlreadyExists"]
        assert "orders_list_page.dart" in report.errors[0].message

    def test_migration_flags_old_files(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["orders", "--state", "riverpod"])
        base = "lib/features/orders"

        report = engine.run("flutter-add-state", ["orders", "--type", "bloc", "--migrate", "riverpod"])

        assert report.success, report.errors
        assert report.created == [
            f"{base}/presentation/bloc/orders_event.dart",
            f"{base}/presentation/bloc/orders_state.dart",
            f"{base}/presentation/bloc/orders_bloc.dart",
        ]
        assert report.modified == [f"{base}/presentation/pages/orders_list_page.dart"]
        assert report.flagged_for_removal == [f"{base}/presentation/providers/orders_providers.dart"]
        assert f"{base}/presentation/providers/orders_providers.dart" in memory_fs.files
        assert "BlocBuilder<OrdersBloc, OrdersState>" in memory_fs.files[
            f"{base}/presentation/pages/orders_list_page.dart"
        ]
        assert f"{base}/orders.dart" not in memory_fs.files

    def test_migration_updates_existing_barrel(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["orders", "--barrel"])
        base = "lib/features/orders"

        report = engine.run(
            "flutter-add-state", ["orders", "--type", "bloc", "--migrate", "riverpod", "--barrel"]
        )

        assert report.success, report.errors
        assert report.modified == [
            f"{base}/presentation/pages/orders_list_page.dart",
            f"{base}/orders.dart",
        ]
        barrel = memory_fs.files[f"{base}/orders.dart"].splitlines()
        assert barrel[-2:] == [
            "export 'presentation/pages/orders_list_page.dart';",
            "export 'presentation/bloc/orders_bloc.dart';",
        ]
        assert barrel.count("export 'presentation/pages/orders_list_page.dart';") == 1

    def test_migrate_equal_to_type_rejected(self, engine):
        report = engine.run("flutter-add-state", ["orders", "--type", "bloc", "--migrate", "bloc"])
        assert [e.type for e in report.errors] == ["InvalidChoice"]

    def test_persist_adds_storage(self, engine, memory_fs):
        engine.run("flutter-new-feature", ["orders", "--state", "bloc", "--barrel"])
        report = engine.run(
            "flutter-add-state",
            ["orders", "--type", "provider", "--migrate", "bloc", "--persist", "--barrel"],
        )
        assert report.success, report.errors
        assert "lib/features/orders/data/datasources/orders_local_storage.dart" in report.created
        assert "export 'data/datasources/orders_local_storage.dart';" in memory_fs.files[
            "lib/features/orders/orders.dart"
        ]
        assert sorted(report.flagged_for_removal) == [
            "lib/features/orders/presentation/bloc/orders_bloc.dart",
            "lib/features/orders/presentation/bloc/orders_event.dart",
            "lib/features/orders/presentation/bloc/orders_state.dart",
        ]


# ---------------------------------------------------------------------------
# flutter-add-auth
# ---------------------------------------------------------------------------


class TestAddAuth:
    def test_missing_backend(self, engine):
        report = engine.run("flutter-add-auth", ["auth"])
        assert [e.type for e in report.errors] == ["MissingRequiredArgument"]

    def test_supabase_with_guards(self, engine, memory_fs):
        report = engine.run(
            "flutter-add-auth",
            ["auth", "--backend", "supabase", "--providers", "email,github", "--guards"],
        )
        assert report.success, report.errors
        assert "lib/core/router/auth_guard.dart" in report.created
        impl = memory_fs.files["lib/features/auth/data/repositories/auth_repository_impl.dart"]
        assert "package:supabase_flutter/supabase_flutter.dart" in impl
        page = memory_fs.files["lib/features/auth/presentation/pages/sign_in_page.dart"]
        assert "const enabledProviders = ['email', 'github'];" in page
        assert report.agents == ["flutter-auth", "flutter-security"]


# ---------------------------------------------------------------------------
# Errors, toolchain, plan, verify
# ---------------------------------------------------------------------------


class TestEngineMisc:
    def test_unknown_command(self, engine):
        report = engine.run("flutter-nope", ["x"])
        assert report.success is False
        assert report.errors[0].type == "UnknownCommand"
        assert report.errors[0].category == "input"
        assert report.agents == []

    def test_toolchain_runs_after_write(self, engine):
        results = [ToolchainResult(command=["dart", "format", "lib/features/products"], exit_code=65)]
        mock_run = AsyncMock(return_value=results)
        with patch("flutter_scaffold.engine.run_toolchain", mock_run):
            report = engine.run("flutter-new-feature", ["products"], run_toolchain_steps=True)

        mock_run.assert_awaited_once()
        assert mock_run.call_args.args[0] == [["dart", "format", "lib/features/products"]]
        assert report.success is True
        assert report.toolchain == results
        assert report.warnings == ["toolchain step failed (65): dart format lib/features/products"]

    def test_toolchain_skipped_on_dry_run_and_failure(self, engine):
        mock_run = AsyncMock(return_value=[])
        with patch("flutter_scaffold.engine.run_toolchain", mock_run):
            engine.run("flutter-new-feature", ["products"], dry_run=True, run_toolchain_steps=True)
            engine.run("flutter-new-widget", ["bad_name"], run_toolchain_steps=True)
        mock_run.assert_not_called()

    def test_toolchain_disabled_by_default(self, engine):
        mock_run = AsyncMock(return_value=[])
        with patch("flutter_scaffold.engine.run_toolchain", mock_run):
            engine.run("flutter-new-feature", ["products"])
        mock_run.assert_not_called()

    def test_plan_has_no_side_effects(self, engine, memory_fs):
        plan = engine.plan("flutter-new-feature", ["products", "--state", "provider"])
        assert plan.template_set.key == "new_feature/provider"
        assert plan.bindings["Feature"] == "Products"
        assert plan.context.package_name == "app"
        assert plan.check.ok
        assert plan.toolchain == [["dart", "format", "lib/features/products"]]
        assert memory_fs.writes == []

    def test_verify_bundled(self, engine):
        assert engine.verify() == []
