"""Core Business Logic Module

This module provides the directory and credential logic of CAAS,
independent of the command line front end.

Module Structure:
    - cordys/           : LDAP object model, resolver, SAML artifacts, SOAP transport

Usage Pattern:
    Import explicitly when needed:
        from caas.core.cordys import CaasSession, DirectoryResolver, CredentialManager
"""
