# tests/test_access_service.py
"""Tests for identity scoping."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import MagicMock
from fleetobd.errors import ForbiddenError
from fleetobd.models.enums import DriverRole
from fleetobd.services.access_service import (
    Identity, require_company_tier, require_driver_self, require_vehicle_access,
)


def vehicle(company_id=1, current_driver_id=None):
    return MagicMock(company_id=company_id, current_driver_id=current_driver_id)


class TestIdentity:
    def test_tiers(self):
        assert Identity(company_id=1).is_company_tier
        assert Identity(company_id=1, driver_id=5, role=DriverRole.ADMIN).is_company_tier
        assert not Identity(company_id=1, driver_id=5).is_company_tier
        assert not Identity(company_id=1, driver_id=5, role=DriverRole.STAFF).is_company_tier


class TestCompanyTier:
    def test_own_company(self):
        require_company_tier(Identity(company_id=1), 1)

    def test_other_company(self):
        with pytest.raises(ForbiddenError):
            require_company_tier(Identity(company_id=1), 2)

    def test_plain_driver(self):
        with pytest.raises(ForbiddenError):
            require_company_tier(Identity(company_id=1, driver_id=3), 1)


class TestVehicleAccess:
    def test_company_sees_any_own_vehicle(self):
        require_vehicle_access(Identity(company_id=1), vehicle())

    def test_bound_driver_sees_vehicle(self):
        require_vehicle_access(Identity(company_id=1, driver_id=8), vehicle(current_driver_id=8))

    def test_other_driver_refused(self):
        with pytest.raises(ForbiddenError):
            require_vehicle_access(Identity(company_id=1, driver_id=9), vehicle(current_driver_id=8))
        with pytest.raises(ForbiddenError):
            require_vehicle_access(Identity(company_id=1, driver_id=9), vehicle())

    def test_cross_company_refused_even_for_admin(self):
        with pytest.raises(ForbiddenError):
            require_vehicle_access(Identity(company_id=2), vehicle(company_id=1))


class TestDriverSelf:
    def test_self_and_company(self):
        require_driver_self(Identity(company_id=1, driver_id=4), 1, 4)
        require_driver_self(Identity(company_id=1), 1, 4)

    def test_other_driver(self):
        with pytest.raises(ForbiddenError):
            require_driver_self(Identity(company_id=1, driver_id=5), 1, 4)
