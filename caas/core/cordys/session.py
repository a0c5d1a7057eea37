"""Wiring of credentials, transports, package lookup and resolver for a CLI run."""
from __future__ import annotations
import threading
from typing import Dict, Optional, Union

from .client import SoapClient
from .dn import IdentityPath
from .objects import CordysObject, CordysSystem, Organization
from .packages import PackageService
from .resolver import DirectoryResolver
from .saml import CredentialArtifact, CredentialManager, SamlAuthenticator


class CaasSession:
    """One in-memory session over the configured Cordys systems.

    Usage:
        session = CaasSession(load_settings())
        user = session.resolve("cn=jdoe,cn=organizational users,o=acme,cn=cordys,cn=defaultInst,o=vanenburg.com")
        org = session.organization_of(user.dn)
    """

    def __init__(self, settings, credentials: Optional[CredentialManager] = None):
        """Initialize session.

        Args:
            settings: AppConfig with the configured systems
            credentials: Credential manager to share; one is created if omitted
        """
        self.settings = settings
        self.credentials = credentials or CredentialManager(
            SamlAuthenticator(settings.systems),
            settings.credentials(),
        )
        self.packages = PackageService(lambda system: system.client.list_packages())
        self.resolver = DirectoryResolver(
            fetch_entry=lambda system, dn: system.client.fetch_entry(dn),
            find_package=self.packages.find_package_by_name,
        )
        self._lock = threading.Lock()
        self._systems: Dict[str, CordysSystem] = {}

    def get_system(self, name: Optional[str] = None) -> CordysSystem:
        """Return the CordysSystem for a configured name (default system if omitted)."""
        config = self.settings.get_system(name)
        with self._lock:
            system = self._systems.get(config.name)
            if system is None:
                client = SoapClient(config, self.credentials)
                system = CordysSystem(config.name, config.ldap_root, client, system_org=config.system_org)
                self._systems[config.name] = system
            return system

    def resolve(self, dn: Union[str, IdentityPath], system: Optional[str] = None) -> Optional[CordysObject]:
        return self.resolver.resolve(self.get_system(system), dn)

    def organization_of(self, dn: Union[str, IdentityPath], system: Optional[str] = None) -> Optional[Organization]:
        """Resolve dn and return the organization it belongs to."""
        obj = self.resolve(dn, system)
        if obj is None:
            return None
        return self.resolver.get_organizational_context(obj)

    def current_artifact(self, system: Optional[str] = None) -> CredentialArtifact:
        return self.credentials.get_artifact(self.get_system(system).name)
