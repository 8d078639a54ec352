"""Auction engine core: math, configuration, auctions, state and storage"""
