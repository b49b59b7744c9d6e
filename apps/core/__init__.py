"""
-------------------------------------------------------------------------
System: PLES (Payroll Lookup & E-Signature System)
Client: Garment Manufacturing Company, HR & Payroll Office
Team Lead: Jamil Shah
Developers: Ali Asghar, Akhtar Munir and Zarif Khan
Description: Core app initialization. Contains shared mixins, exceptions and the base API view.
-------------------------------------------------------------------------
"""
