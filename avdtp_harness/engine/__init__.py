"""Scripted exchange engine"""
