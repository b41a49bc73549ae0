"""HTTP接口"""
