def get_member_snapshot(member):
    """Identity fields copied onto payments at the moment they are recorded."""
    return {
        "id": member.pk,
        "name": member.full_name,
        "email": member.email,
        "phone": member.phone_number,
    }


def get_agreement_snapshot(member):
    return {
        **get_member_snapshot(member),
        "plan_type": member.plan_type,
        "membership_type": member.membership_type,
        "membership_duration": member.membership_duration,
        "membership_start_date": str(member.membership_start_date) if member.membership_start_date else None,
        "membership_end_date": str(member.membership_end_date) if member.membership_end_date else None,
        "membership_status": member.membership_status,
        "assigned_trainer": member.assigned_trainer_id,
    }


def get_gym_snapshot(owner):
    """Identity of the gym owner that received a payment."""
    return {
        "id": str(owner.pk),
        "name": owner.display_name,
        "email": owner.email,
    }
