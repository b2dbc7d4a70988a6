"""One parser per import source"""
