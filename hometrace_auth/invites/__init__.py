"""Invite tokens: issuance by realtors and admins, validation on sign-up."""
