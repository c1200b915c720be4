"""
Ujian Terpantau - runtime sesi ujian dengan pengawasan integritas
"""
__version__ = "1.0.0"
