"""
Configuration management for the stack diagnoser.

Contains the pydantic settings object that is passed explicitly to the AWS
client factory and the diagnoser.
"""
