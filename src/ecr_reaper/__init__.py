"""Enforce an image retention policy on an AWS ECR registry."""
