"""Pydantic models."""

from sia.models.asset import Asset, AssetCreate, AssetType, AssetUpdate, IPStatus
from sia.models.error import ErrorDetail
from sia.models.ip_registration import IPRegistration, RegistrationStatus
from sia.models.storyworld import Storyworld, StoryworldCreate, StoryworldUpdate, Visibility
from sia.models.user import UserProfile, WalletRecord
