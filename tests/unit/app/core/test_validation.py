"""Tests for catalog-driven deployment validation."""

import pytest

from stackport.app.core.catalog import CatalogEntry, ImageCatalog
from stackport.app.core.errors import ValidationError
from stackport.app.core.validation import DeploymentValidator, env_vars_match
from tests.fixtures import POSTGRES_ENV


class TestCreateValidation:
    """Rules shared by create and update."""

    def test_valid_postgres_deployment(self, validator, make_deployment):
        candidate = make_deployment(image="postgres", volume_size_gib=1, env_vars=POSTGRES_ENV)
        assert validator.validate(candidate) == {}

    def test_valid_redis_deployment(self, validator, make_deployment):
        assert validator.validate(make_deployment()) == {}

    def test_missing_image(self, validator, make_deployment):
        errors = validator.validate(make_deployment(image=""))
        assert errors["image"] == "must be provided"

    def test_unknown_image(self, validator, make_deployment):
        errors = validator.validate(make_deployment(image="oracle"))
        assert errors["image"] == "needs to be available"

    def test_unknown_image_also_fails_volume_and_env(self, validator, make_deployment):
        errors = validator.validate(make_deployment(image="oracle"))
        assert errors["volume"] == "not available for this image"
        assert errors["env_vars"] == "not available or valid"

    @pytest.mark.parametrize(
        ("volume", "message"),
        [
            (-1, "cannot have a negative value"),
            (6, "cannot have a value over 5"),
            (0, "not available for this image"),
        ],
    )
    def test_volume_bounds(self, validator, make_deployment, volume, message):
        errors = validator.validate(make_deployment(volume_size_gib=volume))
        assert errors["volume"] == message

    def test_volume_not_supported_by_image(self, make_deployment):
        validator = DeploymentValidator(ImageCatalog({"cache": CatalogEntry.of(False)}))
        errors = validator.validate(make_deployment(image="cache", volume_size_gib=1))
        assert errors == {"volume": "not available for this image"}

    @pytest.mark.parametrize(
        ("replicas", "message"),
        [
            (0, "needs to have a value of at least 1"),
            (5, "cannot have a value over 4"),
        ],
    )
    def test_replica_bounds(self, validator, make_deployment, replicas, message):
        errors = validator.validate(make_deployment(replicas=replicas))
        assert errors == {"replicas": message}

    def test_boundary_values_are_valid(self, validator, make_deployment):
        assert validator.validate(make_deployment(volume_size_gib=5, replicas=4)) == {}
        assert validator.validate(make_deployment(volume_size_gib=1, replicas=1)) == {}

    def test_missing_env_var(self, validator, make_deployment):
        env = dict(POSTGRES_ENV)
        del env["POSTGRES_USER"]
        errors = validator.validate(make_deployment(image="postgres", env_vars=env))
        assert errors == {"env_vars": "not available or valid"}

    def test_extra_env_var(self, validator, make_deployment):
        errors = validator.validate(make_deployment(env_vars={"EXTRA": "1"}))
        assert errors == {"env_vars": "not available or valid"}

    def test_all_fields_reported_at_once(self, validator, make_deployment):
        errors = validator.validate(
            make_deployment(image="redis", volume_size_gib=9, replicas=0, env_vars={"X": "1"})
        )
        assert set(errors) == {"volume", "replicas", "env_vars"}

    def test_first_message_per_field_wins(self, validator, make_deployment):
        # -1 fails both the sign check and the availability check
        errors = validator.validate(make_deployment(volume_size_gib=-1))
        assert errors["volume"] == "cannot have a negative value"

    def test_port_is_ignored_on_create(self, validator, make_deployment):
        assert validator.validate(make_deployment(assigned_port=80)) == {}


class TestUpdateValidation:
    @pytest.mark.parametrize(
        ("port", "message"),
        [
            (29999, "cannot have a value under 30000"),
            (32768, "cannot have a value over 32767"),
        ],
    )
    def test_port_bounds(self, validator, make_deployment, port, message):
        errors = validator.validate(make_deployment(assigned_port=port), for_update=True)
        assert errors == {"port": message}

    @pytest.mark.parametrize("port", [0, 30000, 32767])
    def test_valid_ports(self, validator, make_deployment, port):
        assert validator.validate(make_deployment(assigned_port=port), for_update=True) == {}


class TestEnsureValid:
    def test_raises_with_all_errors(self, validator, make_deployment):
        with pytest.raises(ValidationError) as excinfo:
            validator.ensure_valid(make_deployment(replicas=9, image="nope"))

        assert excinfo.value.errors["replicas"] == "cannot have a value over 4"
        assert excinfo.value.errors["image"] == "needs to be available"

    def test_passes_silently_when_valid(self, validator, make_deployment):
        validator.ensure_valid(make_deployment())


def test_env_vars_match_requires_exact_set():
    required = frozenset({"A", "B"})
    assert env_vars_match({"A": "1", "B": "2"}, required)
    assert not env_vars_match({"A": "1"}, required)
    assert not env_vars_match({"A": "1", "B": "2", "C": "3"}, required)
    assert env_vars_match({}, frozenset())
