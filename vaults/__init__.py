"""
Vault 實作模組
"""
