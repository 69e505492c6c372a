"""
tesland/client/app.py - Process-wide client context.

Builds the storage, localization store and session store once and owns their lifecycle:

    async with AppContext(JsonFileStorage("~/.tesland/state.json")) as ctx:
        await ctx.session.sign_in(email, password, remember_me=False)
        wizard = ctx.new_booking()
    # leaving the block runs the unload cleanup

Firestore is only touched through the injected callables, so a context can be built
without credentials as long as `role_lookup`, `insert` and `register_device` are given.
"""
import logging
from typing import Optional

from tesland.client.booking import BookingWizard, DeviceRegistrar, Inserter
from tesland.client.identity import FirebaseIdentityClient
from tesland.client.localization import LocalizationStore
from tesland.client.session import RoleLookup, SessionStore
from tesland.client.storage import LocalStorage
from tesland.config import get_db
from tesland.repositories import appointments, push_subscriptions, roles

logger = logging.getLogger("tesland.client")


class AppContext:
    def __init__(self, storage: LocalStorage, identity: Optional[FirebaseIdentityClient] = None,
                 role_lookup: Optional[RoleLookup] = None, insert: Optional[Inserter] = None,
                 register_device: Optional[DeviceRegistrar] = None):
        self.storage = storage
        self.identity = identity or FirebaseIdentityClient(storage)
        self.localization = LocalizationStore(storage)
        self.session = SessionStore(self.identity, storage, role_lookup or self._firestore_role_lookup)
        self._insert = insert
        self._register_device = register_device

    # Firestore defaults resolve the client per call, so nothing connects until used
    @staticmethod
    def _firestore_role_lookup(uid: str) -> bool:
        return roles.is_admin(get_db(), uid)

    @staticmethod
    def _firestore_insert(data):
        return appointments.create(get_db(), data)

    @staticmethod
    def _firestore_register_device(appointment_id: str, device_token: str, platform: str):
        return push_subscriptions.register_for_appointment(get_db(), appointment_id, device_token, platform)

    def new_booking(self) -> BookingWizard:
        return BookingWizard(self._insert or self._firestore_insert, self.localization,
                             self._register_device or self._firestore_register_device)

    async def start(self) -> None:
        await self.session.start()
        logger.info("Client started (language=%s, state=%s)", self.localization.language, self.session.state.value)

    def unload(self) -> None:
        self.session.handle_unload()

    async def close(self) -> None:
        await self.session.close()

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, *exc_info):
        self.unload()
        await self.close()
