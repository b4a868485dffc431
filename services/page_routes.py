"""Server-rendered pages. The access gate decides who reaches them."""


def index():
    import app as a

    get_current_user = a.get_current_user
    redirect = a.redirect
    render_template = a.render_template
    url_for = a.url_for

    user = get_current_user()
    if not user:
        return redirect(url_for('sign_in_page'))
    return render_template('calendar.html', user=user)


def sign_in_page():
    import app as a

    request = a.request
    render_template = a.render_template

    return render_template('sign_in.html', redirect_to=request.args.get('redirect') or '/')


def sign_up_page():
    import app as a

    render_template = a.render_template

    return render_template('sign_up.html')


def change_password_page():
    import app as a

    request = a.request
    render_template = a.render_template

    expired = request.args.get('expired') == 'true'
    return render_template('change_password.html', expired=expired)
